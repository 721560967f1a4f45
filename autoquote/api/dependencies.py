"""FastAPI dependencies shared by the v1 routers."""

from fastapi import Request

from autoquote.services.container import ServiceContainer


def get_services(request: Request) -> ServiceContainer:
    """Service container created by the application lifespan."""
    return request.app.state.services
