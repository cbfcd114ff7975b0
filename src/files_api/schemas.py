####################################
# --- Request/response schemas --- #
####################################

from enum import Enum
from typing import Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

from files_api.identifiers import ParentId, format_parent_id

DEFAULT_LIST_FILES_PAGE = 0


class FileType(str, Enum):
    """Enumeration of the kinds of record the registry stores"""
    FOLDER = 'folder'
    FILE = 'file'
    IMAGE = 'image'


class ThumbnailStatus(str, Enum):
    """Enumeration for the post-processing state of a file"""
    PENDING = 'pending'
    READY = 'ready'
    FAILED = 'failed'
    SKIPPED = 'skipped'


class User(BaseModel):
    """A user document as stored in the ``users`` collection."""
    id: ObjectId
    email: str
    password: str

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def from_document(cls, document: dict) -> "User":
        return cls(id=document["_id"], email=document["email"], password=document["password"])


class FileRecord(BaseModel):
    """A file document as stored in the ``files`` collection."""
    id: ObjectId
    user_id: ObjectId
    name: str
    type: FileType
    is_public: bool = False
    parent_id: ParentId
    local_path: Optional[str] = None
    thumbnail_status: Optional[ThumbnailStatus] = None
    thumbnails: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def from_document(cls, document: dict) -> "FileRecord":
        return cls(
            id=document["_id"],
            user_id=document["userId"],
            name=document["name"],
            type=document["type"],
            is_public=document.get("isPublic", False),
            parent_id=document["parentId"],
            local_path=document.get("localPath"),
            thumbnail_status=document.get("thumbnailStatus"),
            thumbnails=document.get("thumbnails") or {},
        )

    def to_document(self) -> dict:
        return {
            "_id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "type": self.type.value,
            "isPublic": self.is_public,
            "parentId": self.parent_id,
            "localPath": self.local_path,
            "thumbnailStatus": self.thumbnail_status.value if self.thumbnail_status else None,
            "thumbnails": self.thumbnails,
        }

    def is_visible_to(self, requester_id: ObjectId) -> bool:
        return self.is_public or self.user_id == requester_id


class UploadResult(BaseModel):
    """Outcome of a file upload: the persisted record plus non-fatal warnings."""
    file: FileRecord
    warnings: List[str] = Field(default_factory=list)


class CreateUserRequest(BaseModel):
    """Request body for `POST /users`."""
    email: Optional[str] = None
    password: Optional[str] = None


class UserResponse(BaseModel):
    """Response model for `POST /users` and `GET /users/me`."""
    id: str
    email: str


class TokenResponse(BaseModel):
    """Response model for `GET /connect`."""
    token: str


class UploadFileRequest(BaseModel):
    """Request body for `POST /files`."""
    name: Optional[str] = None
    type: Optional[str] = None
    is_public: bool = Field(False, alias="isPublic")
    parent_id: Optional[str] = Field(None, alias="parentId")
    data: Optional[str] = None

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "name": "photo.png",
                "type": "image",
                "isPublic": False,
                "parentId": "0",
                "data": "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8z8BQDwAEhQGAhKmMIQAAAABJRU5ErkJggg==",
            }
        },
    )

    def to_attrs(self) -> dict:
        return self.model_dump(by_alias=True)


class FileResponse(BaseModel):
    """Response model for a single file record."""
    id: str
    userId: str
    name: str
    type: FileType
    isPublic: bool
    parentId: str
    thumbnailStatus: Optional[ThumbnailStatus] = None
    warnings: Optional[List[str]] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "5f1e881cc7ba06511e683b23",
                "userId": "5f1e7cda04a394508232559d",
                "name": "photo.png",
                "type": "image",
                "isPublic": False,
                "parentId": "0",
                "thumbnailStatus": "pending",
            }
        }
    )

    @classmethod
    def from_record(cls, record: FileRecord, warnings: Optional[List[str]] = None) -> "FileResponse":
        return cls(
            id=str(record.id),
            userId=str(record.user_id),
            name=record.name,
            type=record.type,
            isPublic=record.is_public,
            parentId=format_parent_id(record.parent_id),
            thumbnailStatus=record.thumbnail_status,
            warnings=warnings or None,
        )


class ListFilesQueryParams(BaseModel):
    """Query parameters for `GET /files`."""
    parentId: str = Field("0", description="The folder to list, `0` for the root.")
    page: int = Field(DEFAULT_LIST_FILES_PAGE, ge=0, description="Zero-based page index.")


class StatusResponse(BaseModel):
    """Response model for `GET /status`."""
    redis: bool
    db: bool


class StatsResponse(BaseModel):
    """Response model for `GET /stats`."""
    users: int
    files: int
