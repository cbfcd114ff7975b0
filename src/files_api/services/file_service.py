"""
File service for Files API document operations.

Owns the ``files`` collection: upload, lookup, folder-scoped listing and
visibility changes. Payloads go to the blob store; every stored payload gets
exactly one thumbnail job on the post-processing queue.
"""

import logging
import mimetypes
from typing import Dict, List, Optional, Sequence, Tuple

from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from database.mongo_adapter import MongoAdapter
from files_api.adapters.queue import BaseQueue, build_thumbnail_task
from files_api.adapters.storage import LocalBlobStore
from files_api.errors import (
    FileNotFound,
    ParentNotFound,
    QueueEnqueueError,
    ValidationError,
)
from files_api.identifiers import ROOT_PARENT_ID, parse_object_id, parse_parent_id
from files_api.schemas import FileRecord, FileType, ThumbnailStatus, UploadResult

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
DEFAULT_THUMBNAIL_WIDTHS = (500, 250, 100)


class FileService:
    """Service for managing file records, their payloads and post-processing"""

    def __init__(
        self,
        db: MongoAdapter,
        blob_store: LocalBlobStore,
        queue: BaseQueue,
        page_size: int = DEFAULT_PAGE_SIZE,
        duplicate_names: str = "allow",
        thumbnail_widths: Sequence[int] = DEFAULT_THUMBNAIL_WIDTHS,
    ):
        self.db = db
        self.blob_store = blob_store
        self.queue = queue
        self.page_size = page_size
        self.duplicate_names = duplicate_names
        self.thumbnail_widths = tuple(thumbnail_widths)

    async def create(self, owner_id, attrs: dict) -> UploadResult:
        """Create a file, image or folder owned by ``owner_id``.

        ``attrs`` holds ``name``, ``type``, ``isPublic``, ``parentId`` and,
        for non-folders, the base64 ``data``. The payload is written before
        the record is inserted, and a failed write leaves no record behind.
        A failure to schedule thumbnails is reported in ``warnings`` only.

        Raises:
            ValidationError: A required attribute is missing or malformed.
            ParentNotFound: ``parentId`` does not resolve to a visible folder.
            StorageWriteError: The payload could not be written.
        """
        owner_id = parse_object_id(owner_id, "userId")

        name = attrs.get("name")
        if not name or not isinstance(name, str):
            raise ValidationError("name")

        try:
            file_type = FileType(attrs.get("type"))
        except ValueError:
            raise ValidationError("type") from None

        data = attrs.get("data")
        if file_type != FileType.FOLDER and not data:
            raise ValidationError("data")

        parent_id = parse_parent_id(attrs.get("parentId"))
        if parent_id != ROOT_PARENT_ID:
            self._check_parent(parent_id, owner_id)

        is_public = attrs.get("isPublic")
        if is_public is None:
            is_public = False
        elif not isinstance(is_public, bool):
            raise ValidationError("isPublic", "Invalid isPublic")

        if self.duplicate_names == "reject" and self._sibling_exists(owner_id, parent_id, name):
            raise ValidationError("name", "File already exists")

        record = FileRecord(
            id=ObjectId(),
            user_id=owner_id,
            name=name,
            type=file_type,
            is_public=is_public,
            parent_id=parent_id,
        )

        if file_type == FileType.FOLDER:
            self.db.files.insert_one(record.to_document())
            logger.info(f"Created folder {record.id} for user {owner_id}")
            return UploadResult(file=record)

        record.local_path = self.blob_store.write(data, record.id)
        record.thumbnail_status = ThumbnailStatus.PENDING
        try:
            self.db.files.insert_one(record.to_document())
        except PyMongoError:
            logger.error(f"Could not insert record {record.id}, removing its blob")
            self.blob_store.remove(record.local_path)
            raise
        logger.info(f"Created {file_type.value} {record.id} for user {owner_id} at {record.local_path}")

        warnings = []
        try:
            await self.queue.add_task(build_thumbnail_task(record.id, owner_id))
        except QueueEnqueueError as e:
            logger.warning(f"Thumbnail job for {record.id} not enqueued: {e.message}")
            warnings.append(f"Thumbnail generation was not scheduled: {e.message}")

        return UploadResult(file=record, warnings=warnings)

    def _check_parent(self, parent_id: ObjectId, requester_id: ObjectId) -> None:
        document = self.db.files.find_one({"_id": parent_id})
        if document is None:
            raise ParentNotFound()
        parent = FileRecord.from_document(document)
        # Someone else's private folder must look the same as a missing one
        if not parent.is_visible_to(requester_id):
            raise ParentNotFound()
        if parent.type != FileType.FOLDER:
            raise ParentNotFound("Parent is not a folder")

    def _sibling_exists(self, owner_id: ObjectId, parent_id, name: str) -> bool:
        return self.db.files.find_one(
            {"userId": owner_id, "parentId": parent_id, "name": name}, {"_id": 1}
        ) is not None

    def get_by_id(self, file_id, requester_id) -> Optional[FileRecord]:
        """Fetch a record the requester may see; private records of others read as missing.

        ``requester_id`` may be None for an anonymous reader, who only sees
        public records.
        """
        try:
            file_id = parse_object_id(file_id, "id")
        except ValidationError:
            return None
        if requester_id is not None and not isinstance(requester_id, ObjectId):
            requester_id = ObjectId(requester_id) if ObjectId.is_valid(requester_id) else None

        document = self.db.files.find_one({"_id": file_id})
        if document is None:
            return None
        record = FileRecord.from_document(document)
        if not record.is_visible_to(requester_id):
            return None
        return record

    def find_owned(self, file_id, owner_id) -> Optional[FileRecord]:
        """Fetch a record by id and owner, regardless of visibility"""
        try:
            query = {"_id": parse_object_id(file_id, "fileId"), "userId": parse_object_id(owner_id, "userId")}
        except ValidationError:
            return None
        document = self.db.files.find_one(query)
        return FileRecord.from_document(document) if document else None

    def list(self, requester_id, parent_id=ROOT_PARENT_ID, page: int = 0) -> List[FileRecord]:
        """List the requester's records directly under ``parent_id``, in insertion order.

        Pages are zero-based and hold ``page_size`` records; a page past the
        end is empty.
        """
        requester_id = parse_object_id(requester_id, "userId")
        parent_id = parse_parent_id(parent_id)
        if not isinstance(page, int) or page < 0:
            raise ValidationError("page", "Invalid page")

        cursor = (
            self.db.files.find({"userId": requester_id, "parentId": parent_id})
            .sort("_id", ASCENDING)
            .skip(page * self.page_size)
            .limit(self.page_size)
        )
        return [FileRecord.from_document(document) for document in cursor]

    def set_visibility(self, file_id, owner_id, is_public: bool) -> Optional[FileRecord]:
        """Publish or unpublish a record; only its owner may do so"""
        try:
            query = {"_id": parse_object_id(file_id, "id"), "userId": parse_object_id(owner_id, "userId")}
        except ValidationError:
            return None

        document = self.db.files.find_one_and_update(
            query,
            {"$set": {"isPublic": bool(is_public)}},
            return_document=ReturnDocument.AFTER,
        )
        if document is None:
            return None
        logger.info(f"Set isPublic={bool(is_public)} on {file_id}")
        return FileRecord.from_document(document)

    def read_data(self, file_id, requester_id, size: Optional[int] = None) -> Tuple[bytes, str]:
        """Return the payload (or one of its thumbnails) and its mime type.

        Raises:
            FileNotFound: The record is missing, not visible, or has no stored payload.
            ValidationError: The record is a folder or ``size`` is not a thumbnail width.
        """
        record = self.get_by_id(file_id, requester_id)
        if record is None:
            raise FileNotFound()
        if record.type == FileType.FOLDER:
            raise ValidationError("type", "A folder doesn't have content")
        if not record.local_path:
            raise FileNotFound()

        path = record.local_path
        if size is not None:
            if size not in self.thumbnail_widths:
                raise ValidationError("size", "Invalid size")
            path = f"{record.local_path}_{size}"

        data = self.blob_store.read(path)
        mime_type = mimetypes.guess_type(record.name)[0] or "application/octet-stream"
        return data, mime_type

    def attach_thumbnails(self, file_id: ObjectId, thumbnails: Dict[int, str], status: ThumbnailStatus) -> bool:
        """Record derived thumbnail paths and the post-processing outcome"""
        result = self.db.files.update_one(
            {"_id": file_id},
            {"$set": {
                "thumbnails": {str(width): path for width, path in thumbnails.items()},
                "thumbnailStatus": status.value,
            }},
        )
        return result.matched_count > 0
