"""HTTP routers of the askit API."""
