import asyncio
import logging
from typing import Any, Dict, Optional, Sequence

from pymongo.errors import PyMongoError

from files_api.adapters.queue import THUMBNAIL_TASK_TYPE, BaseQueue, QueuedTask
from files_api.adapters.storage import LocalBlobStore
from files_api.errors import (
    FileNotFound,
    JobNotProcessable,
    StorageWriteError,
    ValidationError,
)
from files_api.identifiers import parse_object_id
from files_api.schemas import FileRecord, FileType, ThumbnailStatus
from files_api.services import FileService, UserService
from files_api.utils.decorators import async_log_execution_time, async_retry
from thumbnail_workers.processing.thumbnails import render_thumbnail

logger = logging.getLogger(__name__)

# Failures worth another attempt; anything else fails the task at once
TRANSIENT_ERRORS = (OSError, StorageWriteError, PyMongoError)


class ThumbnailWorker:
    """Consumes thumbnail tasks and attaches the derived images to file records.

    Delivery is at-least-once: a task is acknowledged only once it has been
    handled, and handling is idempotent because thumbnail paths derive from
    the source path.
    """

    def __init__(
        self,
        queue: BaseQueue,
        file_service: FileService,
        user_service: UserService,
        blob_store: LocalBlobStore,
        widths: Sequence[int] = (500, 250, 100),
        concurrency: int = 1,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        poll_interval: float = 1.0,
    ):
        self.queue = queue
        self.file_service = file_service
        self.user_service = user_service
        self.blob_store = blob_store
        self.widths = tuple(widths)
        self.concurrency = concurrency
        self.poll_interval = poll_interval
        self.running = False
        self._process = async_retry(
            max_attempts=max_attempts,
            delay=retry_delay,
            exceptions=TRANSIENT_ERRORS,
            logger_name=__name__,
        )(self.process_task)
        logger.info(f"Worker initialized with concurrency {concurrency}, widths {self.widths}")

    async def generate_thumbnails(self, record: FileRecord) -> Dict[int, str]:
        """Render and store every thumbnail width for an image record"""
        try:
            source = await asyncio.to_thread(self.blob_store.read, record.local_path)
        except FileNotFound:
            raise JobNotProcessable(f"Source blob missing at {record.local_path}") from None

        thumbnails = {}
        for width in self.widths:
            data = await asyncio.to_thread(render_thumbnail, source, width)
            thumbnails[width] = await asyncio.to_thread(
                self.blob_store.write_variant, record.local_path, width, data
            )
        return thumbnails

    @async_log_execution_time
    async def process_task(self, task: Dict[str, Any]) -> ThumbnailStatus:
        """Process one thumbnail task.

        Raises:
            JobNotProcessable: The task can never succeed (unknown type,
                missing record or owner, undecodable image).
        """
        if task.get('task_type') != THUMBNAIL_TASK_TYPE:
            raise JobNotProcessable(f"Unknown task type: {task.get('task_type')}")
        if not task.get('file_id'):
            raise JobNotProcessable("Missing fileId")
        if not task.get('user_id'):
            raise JobNotProcessable("Missing userId")

        if self.user_service.find_by_id(task['user_id']) is None:
            raise JobNotProcessable(f"User {task['user_id']} not found")
        record = self.file_service.find_owned(task['file_id'], task['user_id'])
        if record is None:
            raise JobNotProcessable(f"File {task['file_id']} not found")

        if record.type != FileType.IMAGE:
            self.file_service.attach_thumbnails(record.id, {}, ThumbnailStatus.SKIPPED)
            return ThumbnailStatus.SKIPPED

        thumbnails = await self.generate_thumbnails(record)
        self.file_service.attach_thumbnails(record.id, thumbnails, ThumbnailStatus.READY)
        logger.info(f"Stored {len(thumbnails)} thumbnails for {record.id}")
        return ThumbnailStatus.READY

    async def handle_task(self, queued: QueuedTask) -> Optional[ThumbnailStatus]:
        """Process a claimed task and acknowledge it once its outcome is final.

        Transient errors are retried in place. Unexpected errors, including a
        failure to record the final status, release the task back to the queue
        and propagate.
        """
        task = queued.body
        logger.info(f"Processing task: {task}")
        try:
            try:
                status = await self._process(task)
            except JobNotProcessable as e:
                logger.error(f"Dropping task {task}: {e.message}")
                self._mark_failed(task)
                status = None
            except TRANSIENT_ERRORS as e:
                logger.error(f"Giving up on task {task} after retries: {str(e)}")
                self._mark_failed(task)
                status = None
        except Exception:
            await self.queue.release(queued)
            raise

        await self.queue.ack(queued)
        return status

    def _mark_failed(self, task: Dict[str, Any]) -> None:
        try:
            file_id = parse_object_id(task.get('file_id'), "fileId")
        except ValidationError:
            return
        self.file_service.attach_thumbnails(file_id, {}, ThumbnailStatus.FAILED)

    async def run_once(self) -> bool:
        """Handle at most one task; returns False when the queue was empty"""
        queued = await self.queue.get_task()
        if queued is None:
            return False
        await self.handle_task(queued)
        return True

    async def listen_for_tasks(self, listener_id: int = 0):
        """Listen for tasks until stopped, backing off after errors"""
        logger.info(f"Listener {listener_id} started listening for tasks")
        consecutive_errors = 0

        while self.running:
            try:
                if not await self.run_once():
                    await asyncio.sleep(self.poll_interval)
                consecutive_errors = 0  # Reset error counter on success
            except Exception as e:
                consecutive_errors += 1
                logger.error(f"Error in task processing loop: {str(e)}", exc_info=True)

                # Implement exponential backoff
                backoff_time = min(30, 2 ** consecutive_errors)
                logger.warning(f"Backing off for {backoff_time} seconds after error...")
                await asyncio.sleep(backoff_time)

        logger.info(f"Listener {listener_id} stopped")

    async def run(self):
        """Recover abandoned tasks, then run ``concurrency`` listeners until stopped"""
        self.running = True
        await self.queue.recover()
        listeners = [
            asyncio.create_task(self.listen_for_tasks(listener_id))
            for listener_id in range(self.concurrency)
        ]
        try:
            await asyncio.gather(*listeners)
        finally:
            for listener in listeners:
                listener.cancel()

    def stop(self):
        """Stop the worker gracefully"""
        logger.info("Stopping worker...")
        self.running = False
