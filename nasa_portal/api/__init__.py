"""HTTP routers exposed by the portal API."""
