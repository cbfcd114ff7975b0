from typing import Optional

from fastapi import APIRouter, Depends, Header, Response, status

from files_api.dependencies import get_current_user_id, get_services, get_token
from files_api.schemas import TokenResponse
from files_api.services import Services
from files_api.services.user_service import parse_basic_auth

router = APIRouter()


@router.get("/connect", response_model=TokenResponse)
async def connect(
    authorization: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    """
    Exchange HTTP Basic credentials for a session token.

    The token is valid for `SESSION_TTL_SECONDS` and goes in the `X-Token`
    header of later requests.
    """
    email, password = parse_basic_auth(authorization)
    user = services.users.verify_credentials(email, password)
    return TokenResponse(token=services.sessions.issue(user))


@router.get(
    "/disconnect",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(get_current_user_id)],
)
async def disconnect(
    token: Optional[str] = Depends(get_token),
    services: Services = Depends(get_services),
):
    """Revoke the `X-Token` session."""
    services.sessions.revoke(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
