"""api/ -- HTTP transport for CredGate (FastAPI app, request/response models, routes)."""
