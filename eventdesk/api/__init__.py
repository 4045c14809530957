"""HTTP API - FastAPI application, dependencies and request models."""
