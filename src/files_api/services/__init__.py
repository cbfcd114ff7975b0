"""
Files API service layer.

``build_services`` is the single place where adapters are constructed from
settings and wired into the services. The API lifespan and the worker CLI
both call it and own the returned handles' lifecycle through ``close``.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from database.mongo_adapter import MongoAdapter
from database.redis_adapter import RedisAdapter
from files_api.adapters.queue import BaseQueue, QueueFactory
from files_api.adapters.storage import LocalBlobStore
from files_api.settings import Settings

from .file_service import FileService
from .session_service import SessionService
from .user_service import UserService

logger = logging.getLogger(__name__)

__all__ = [
    'Services', 'build_services',
    'FileService', 'SessionService', 'UserService',
]


@dataclass
class Services:
    settings: Settings
    db: MongoAdapter
    kv_store: Optional[RedisAdapter]
    blob_store: LocalBlobStore
    queue: BaseQueue
    users: UserService
    files: FileService
    sessions: Optional[SessionService]

    def close(self) -> None:
        self.db.close()
        if self.kv_store is not None:
            self.kv_store.close()


def build_services(
    settings: Settings,
    db: Optional[MongoAdapter] = None,
    kv_store: Optional[RedisAdapter] = None,
    queue: Optional[BaseQueue] = None,
    with_sessions: bool = True,
) -> Services:
    """Construct adapters from ``settings`` (unless supplied) and wire the services"""
    db = db or MongoAdapter(settings.mongodb_uri, db_name=settings.mongodb_db)
    if with_sessions:
        kv_store = kv_store or RedisAdapter(settings.redis_url)
    blob_store = LocalBlobStore(Path(settings.storage_dir))
    queue = queue or QueueFactory.get_queue_handler(settings)

    services = Services(
        settings=settings,
        db=db,
        kv_store=kv_store,
        blob_store=blob_store,
        queue=queue,
        users=UserService(db),
        files=FileService(
            db,
            blob_store,
            queue,
            page_size=settings.page_size,
            duplicate_names=settings.duplicate_names,
            thumbnail_widths=settings.thumbnail_widths,
        ),
        sessions=SessionService(kv_store, ttl_seconds=settings.session_ttl_seconds) if kv_store else None,
    )
    logger.info(f"Services assembled in {settings.deployment_mode} mode")
    return services
