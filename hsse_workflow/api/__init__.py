"""HTTP API for the HSSE workflow (FastAPI)."""
