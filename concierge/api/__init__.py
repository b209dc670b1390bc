"""HTTP API: FastAPI app, dependency wiring and routers."""
