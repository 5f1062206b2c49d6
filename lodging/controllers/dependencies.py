"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from lodging.services.assignment_service import AssignmentEngine
from lodging.services.auth_service import (
    AdminTokenNotConfiguredError,
    AuthService,
    InvalidAdminTokenError,
)
from lodging.services.client_registry import ClientRegistry
from lodging.services.inventory_service import InventoryService
from lodging.services.stats_service import StatsService
from lodging.utils.config import get_settings


bearer_scheme = HTTPBearer(auto_error=False)


def _service_from_state(request: Request, name: str, label: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} service is not initialized",
        )
    return service


def get_auth_service(request: Request) -> AuthService:
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        service = AuthService(settings=get_settings())
        request.app.state.auth_service = service
    return service


def get_assignment_engine(request: Request) -> AssignmentEngine:
    return _service_from_state(request, "assignment_engine", "Assignment")


def get_inventory_service(request: Request) -> InventoryService:
    return _service_from_state(request, "inventory_service", "Inventory")


def get_client_registry(request: Request) -> ClientRegistry:
    return _service_from_state(request, "client_registry", "Client registry")


def get_stats_service(request: Request) -> StatsService:
    return _service_from_state(request, "stats_service", "Stats")


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> str:
    """Authorize the request and return the operator name it acts as."""
    if not auth_service.auth_enabled:
        return auth_service.resolve_operator(None)
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header with Bearer token is required",
        )
    try:
        return auth_service.resolve_operator(credentials.credentials)
    except (AdminTokenNotConfiguredError, InvalidAdminTokenError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
