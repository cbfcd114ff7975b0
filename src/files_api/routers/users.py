from bson import ObjectId
from fastapi import APIRouter, Depends, status

from files_api.dependencies import get_current_user_id, get_services
from files_api.errors import Unauthorized
from files_api.schemas import CreateUserRequest, UserResponse
from files_api.services import Services

router = APIRouter()


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(body: CreateUserRequest, services: Services = Depends(get_services)):
    """
    Register a new user.

    Responds 400 with `Missing email`, `Missing password` or `Already exists`.
    """
    user_id = services.users.create(body.email, body.password)
    user = services.users.find_by_id(user_id)
    return UserResponse(id=str(user.id), email=user.email)


@router.get("/users/me", response_model=UserResponse)
async def get_me(
    user_id: ObjectId = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    """Return the user owning the `X-Token` session."""
    user = services.users.find_by_id(user_id)
    if user is None:
        raise Unauthorized()
    return UserResponse(id=str(user.id), email=user.email)
