"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, status
from fastapi.requests import HTTPConnection
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from coded_service.application.dto.principal import Principal
from coded_service.application.ports.auth import TokenVerifier
from coded_service.application.ports.delivery import DeliveryGateway
from coded_service.config import settings
from coded_service.infrastructure.auth.hs256_verifier import HS256Verifier
from coded_service.infrastructure.db.session import AsyncSessionLocal
from coded_service.infrastructure.db.uow import SqlAlchemyUoW
from coded_service.infrastructure.ws.hub import Hub

_bearer_scheme = HTTPBearer()


async def get_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        try:
            yield uow
        finally:
            await session.close()


UoWDep = Annotated[SqlAlchemyUoW, Depends(get_uow)]


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> Principal:
    verifier = get_verifier()
    try:
        return await verifier.verify(credentials.credentials)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_hub(conn: HTTPConnection) -> Hub:
    """The hub created by the app factory; works for HTTP and WebSocket routes."""
    return conn.app.state.hub


HubDep = Annotated[Hub, Depends(get_hub)]


def get_gateway(hub: HubDep) -> DeliveryGateway:
    return hub


GatewayDep = Annotated[DeliveryGateway, Depends(get_gateway)]
