"""FastAPI adapter for the route editor."""

from gateway_route_binding.fastapi.router import create_route_editor_router

__all__ = ["create_route_editor_router"]
