"""api/ -- HTTP boundary: FastAPI app factory, routes and transport models."""
