from fastapi import APIRouter, Depends, Response, status

from files_api.dependencies import get_services
from files_api.schemas import StatsResponse, StatusResponse
from files_api.services import Services

router = APIRouter()


@router.get("/status", response_model=StatusResponse)
async def get_status(response: Response, services: Services = Depends(get_services)):
    """
    Liveness of the key-value and document stores.

    Returns 200 only when both stores are reachable, 503 otherwise.
    """
    health = StatusResponse(
        redis=services.kv_store is not None and services.kv_store.is_alive(),
        db=services.db.is_alive(),
    )
    if not (health.redis and health.db):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return health


@router.get("/stats", response_model=StatsResponse)
async def get_stats(services: Services = Depends(get_services)):
    """Number of users and files stored."""
    return StatsResponse(users=services.db.count_users(), files=services.db.count_files())
