import asyncio
import json
import logging
import os
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from files_api.errors import QueueEnqueueError
from files_api.settings import Settings, get_settings

logger = logging.getLogger(__name__)

THUMBNAIL_TASK_TYPE = "generate_thumbnails"


def build_thumbnail_task(file_id, user_id) -> Dict[str, Any]:
    """Task envelope for one post-processing job"""
    return {
        "task_type": THUMBNAIL_TASK_TYPE,
        "file_id": str(file_id),
        "user_id": str(user_id),
    }


@dataclass
class QueuedTask:
    """A task claimed from a queue; ``receipt`` identifies it for ack/release"""
    body: Dict[str, Any]
    receipt: str


class BaseQueue:
    """Base class for queue handling (to be extended by specific implementations)"""
    async def add_task(self, task: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def get_task(self) -> Optional[QueuedTask]:
        raise NotImplementedError

    async def ack(self, task: QueuedTask) -> None:
        raise NotImplementedError

    async def release(self, task: QueuedTask) -> None:
        raise NotImplementedError

    async def recover(self) -> int:
        """Return tasks claimed by a crashed consumer to the queue"""
        return 0


class LocalQueue(BaseQueue):
    """Handles local queue using file system for IPC

    Pending tasks are ``*.json`` files, ordered by name. A consumer claims a
    task by renaming it to ``*.processing`` and deletes it on ack, so a task
    survives a worker crash until ``recover`` puts it back.
    """
    PENDING_SUFFIX = ".json"
    CLAIMED_SUFFIX = ".processing"

    def __init__(self, queue_dir: Union[str, Path], max_pending: int = 10000):
        self.queue_dir = Path(queue_dir)
        self.queue_dir.mkdir(parents=True, exist_ok=True)
        self.max_pending = max_pending
        logger.info("LocalQueue initialized at: %s", self.queue_dir)

    def pending_count(self) -> int:
        return sum(1 for _ in self.queue_dir.glob(f"*{self.PENDING_SUFFIX}"))

    async def add_task(self, task: Dict[str, Any]) -> None:
        """Add task to queue"""
        if self.pending_count() >= self.max_pending:
            logger.error("Queue full (%d pending), rejecting task: %s", self.max_pending, task)
            raise QueueEnqueueError("Post-processing queue is full")

        # Unique, time-ordered filename
        filename = f"{time.time_ns()}_{os.getpid()}_{uuid.uuid4().hex[:8]}"
        tmp_path = self.queue_dir / f".{filename}.tmp"
        try:
            with open(tmp_path, 'w') as f:
                json.dump(task, f)
            os.replace(tmp_path, self.queue_dir / f"{filename}{self.PENDING_SUFFIX}")
        except (OSError, TypeError) as e:
            logger.error("Error adding task to queue: %s", str(e))
            raise QueueEnqueueError() from e

        logger.info("Added task to queue: %s", task)

    async def get_task(self) -> Optional[QueuedTask]:
        """Claim the oldest pending task, or return None when the queue is empty"""
        for task_file in sorted(self.queue_dir.glob(f"*{self.PENDING_SUFFIX}")):
            claimed = task_file.with_suffix(self.CLAIMED_SUFFIX)
            try:
                task_file.rename(claimed)
            except FileNotFoundError:
                # Claimed by another consumer
                continue

            try:
                with open(claimed, 'r') as f:
                    task = json.load(f)
            except (OSError, ValueError) as e:
                logger.error("Error reading task file %s: %s", claimed, str(e))
                # Move problematic file to error directory
                error_dir = self.queue_dir / "errors"
                error_dir.mkdir(exist_ok=True)
                claimed.rename(error_dir / task_file.name)
                continue

            logger.info("Retrieved task from queue: %s", task)
            return QueuedTask(body=task, receipt=str(claimed))
        return None

    async def ack(self, task: QueuedTask) -> None:
        Path(task.receipt).unlink(missing_ok=True)

    async def release(self, task: QueuedTask) -> None:
        claimed = Path(task.receipt)
        try:
            claimed.rename(claimed.with_suffix(self.PENDING_SUFFIX))
        except FileNotFoundError:
            logger.warning("Cannot release %s: task file is gone", claimed)

    async def recover(self) -> int:
        recovered = 0
        for claimed in self.queue_dir.glob(f"*{self.CLAIMED_SUFFIX}"):
            claimed.rename(claimed.with_suffix(self.PENDING_SUFFIX))
            recovered += 1
        if recovered:
            logger.warning("Recovered %d unacknowledged task(s)", recovered)
        return recovered


class SQSQueue(BaseQueue):
    """Handles AWS SQS queue"""
    def __init__(self, queue_url: Optional[str] = None, queue_name: Optional[str] = None,
                 sqs_client=None, wait_time_seconds: int = 5, **client_kwargs):
        self.sqs = sqs_client or boto3.client("sqs", **client_kwargs)
        if queue_url is None:
            if not queue_name:
                raise ValueError("SQSQueue needs a queue_url or a queue_name")
            queue_url = self.sqs.get_queue_url(QueueName=queue_name)["QueueUrl"]
        self.queue_url = queue_url
        self.wait_time_seconds = wait_time_seconds

        logger.info(f"SQSQueue initialized")
        logger.info(f"  Queue URL: {self.queue_url}")

    async def add_task(self, task: Dict[str, Any]) -> None:
        """Add a task to the SQS queue."""
        try:
            response = await asyncio.to_thread(
                self.sqs.send_message,
                QueueUrl=self.queue_url,
                MessageBody=json.dumps(task),  # Convert dict to JSON string
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error adding task to SQS queue: {str(e)}")
            raise QueueEnqueueError() from e
        logger.info(f"Task added to SQS queue with ID: {response.get('MessageId')}")

    async def get_task(self) -> Optional[QueuedTask]:
        messages = await asyncio.to_thread(
            self.sqs.receive_message,
            QueueUrl=self.queue_url,
            MaxNumberOfMessages=1,
            WaitTimeSeconds=self.wait_time_seconds,
        )
        if "Messages" not in messages:
            return None

        message = messages["Messages"][0]
        try:
            task = json.loads(message["Body"])
        except ValueError:
            logger.error(f"Dropping malformed SQS message: {message['Body']!r}")
            await asyncio.to_thread(
                self.sqs.delete_message,
                QueueUrl=self.queue_url,
                ReceiptHandle=message["ReceiptHandle"],
            )
            return None

        logger.info(f"Retrieved task from SQS queue: {task}")
        return QueuedTask(body=task, receipt=message["ReceiptHandle"])

    async def ack(self, task: QueuedTask) -> None:
        await asyncio.to_thread(
            self.sqs.delete_message,
            QueueUrl=self.queue_url,
            ReceiptHandle=task.receipt,
        )

    async def release(self, task: QueuedTask) -> None:
        await asyncio.to_thread(
            self.sqs.change_message_visibility,
            QueueUrl=self.queue_url,
            ReceiptHandle=task.receipt,
            VisibilityTimeout=0,
        )


class QueueFactory:
    """Factory to initialize the correct queue handler based on deployment mode"""

    @staticmethod
    def get_queue_handler(settings: Optional[Settings] = None) -> BaseQueue:
        settings = settings or get_settings()
        deployment_mode = settings.deployment_mode
        logger.info(f"Creating queue handler for mode: {deployment_mode}")

        if deployment_mode == "local-dev":
            return LocalQueue(
                Path(settings.storage_dir) / "queue_data",
                max_pending=settings.queue_max_pending,
            )
        if deployment_mode in ("aws-mock", "aws-prod"):
            return SQSQueue(
                queue_url=settings.sqs_queue_url,
                queue_name=settings.sqs_queue_name,
                region_name=settings.aws_region,
                endpoint_url=settings.aws_endpoint_url,
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key,
            )
        raise ValueError(
            f"Invalid deployment_mode: {deployment_mode}. "
            f"Choose from ['local-dev', 'aws-mock', 'aws-prod']"
        )
