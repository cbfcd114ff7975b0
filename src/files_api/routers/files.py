from typing import List, Optional

from bson import ObjectId
from fastapi import (
    APIRouter,
    Depends,
    Path,
    Query,
    Response,
    status
)

from files_api.dependencies import get_current_user_id, get_optional_user_id, get_services
from files_api.errors import FileNotFound
from files_api.schemas import (
    FileResponse,
    ListFilesQueryParams,
    UploadFileRequest,
)
from files_api.services import Services

router = APIRouter()


@router.post("/files", response_model=FileResponse, response_model_exclude_none=True,
             status_code=status.HTTP_201_CREATED)
async def upload_file(
    body: UploadFileRequest,
    user_id: ObjectId = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    """
    Create a folder, file or image.

    Non-folder payloads arrive base64 encoded in `data`. Images are queued
    for thumbnail generation; if scheduling fails the file is still created
    and the response carries a `warnings` list.
    """
    result = await services.files.create(user_id, body.to_attrs())
    return FileResponse.from_record(result.file, result.warnings)


@router.get("/files", response_model=List[FileResponse], response_model_exclude_none=True)
async def list_files(
    query_params: ListFilesQueryParams = Depends(),
    user_id: ObjectId = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    """
    List the caller's files directly under `parentId`.

    Pages are zero-based and hold `PAGE_SIZE` entries; a page past the end is empty.
    """
    records = services.files.list(user_id, query_params.parentId, query_params.page)
    return [FileResponse.from_record(record) for record in records]


@router.get("/files/{file_id}", response_model=FileResponse, response_model_exclude_none=True)
async def get_file(
    file_id: str = Path(..., description="The file id"),
    user_id: ObjectId = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    """Fetch a file the caller owns or that is public."""
    record = services.files.get_by_id(file_id, user_id)
    if record is None:
        raise FileNotFound()
    return FileResponse.from_record(record)


def _set_visibility(services: Services, file_id: str, user_id: ObjectId, is_public: bool) -> FileResponse:
    record = services.files.set_visibility(file_id, user_id, is_public)
    if record is None:
        raise FileNotFound()
    return FileResponse.from_record(record)


@router.put("/files/{file_id}/publish", response_model=FileResponse, response_model_exclude_none=True)
async def publish_file(
    file_id: str = Path(..., description="The file id"),
    user_id: ObjectId = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    """Make one of the caller's files public."""
    return _set_visibility(services, file_id, user_id, True)


@router.put("/files/{file_id}/unpublish", response_model=FileResponse, response_model_exclude_none=True)
async def unpublish_file(
    file_id: str = Path(..., description="The file id"),
    user_id: ObjectId = Depends(get_current_user_id),
    services: Services = Depends(get_services),
):
    """Make one of the caller's files private again."""
    return _set_visibility(services, file_id, user_id, False)


@router.get(
    "/files/{file_id}/data",
    responses={
        status.HTTP_200_OK: {"description": "The file content, or one of its thumbnails."},
        status.HTTP_404_NOT_FOUND: {"description": "No visible file with that id, or its content is missing."},
    },
)
async def get_file_data(
    file_id: str = Path(..., description="The file id"),
    size: Optional[int] = Query(None, description="Thumbnail width to return instead of the original."),
    user_id: Optional[ObjectId] = Depends(get_optional_user_id),
    services: Services = Depends(get_services),
):
    """
    Download a file's content.

    Public files are readable without a token; private ones only by their owner.
    """
    data, mime_type = services.files.read_data(file_id, user_id, size)
    return Response(content=data, media_type=mime_type)
