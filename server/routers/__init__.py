"""HTTP routers for the Big Two server."""
