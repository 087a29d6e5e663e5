"""Favorites and collections service for the NASA portal."""
