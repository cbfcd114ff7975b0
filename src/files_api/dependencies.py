from typing import Optional

from bson import ObjectId
from fastapi import Depends, Header, Request

from files_api.services import Services


def get_services(request: Request) -> Services:
    """Services assembled by the application lifespan."""
    return request.app.state.services


def get_token(x_token: Optional[str] = Header(None, alias="X-Token")) -> Optional[str]:
    return x_token


def get_current_user_id(
    token: Optional[str] = Depends(get_token),
    services: Services = Depends(get_services),
) -> ObjectId:
    """Resolve the ``X-Token`` header to the authenticated user id; 401 otherwise."""
    return services.sessions.authenticate(token)


def get_optional_user_id(
    token: Optional[str] = Depends(get_token),
    services: Services = Depends(get_services),
) -> Optional[ObjectId]:
    """Like ``get_current_user_id`` but anonymous requests resolve to None."""
    if not token:
        return None
    return services.sessions.authenticate(token)
