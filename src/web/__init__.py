"""Web layer: FastAPI application factory and RBAC dependencies."""
