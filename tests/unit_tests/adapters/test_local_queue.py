from pathlib import Path

import pytest

from files_api.adapters.queue import (
    THUMBNAIL_TASK_TYPE,
    LocalQueue,
    QueueFactory,
    SQSQueue,
    build_thumbnail_task,
)
from files_api.errors import QueueEnqueueError
from files_api.settings import Settings


def test_build_thumbnail_task():
    task = build_thumbnail_task("f1", "u1")
    assert task == {"task_type": THUMBNAIL_TASK_TYPE, "file_id": "f1", "user_id": "u1"}


async def test_empty_queue_returns_none(local_queue: LocalQueue):
    assert await local_queue.get_task() is None


async def test_tasks_are_claimed_in_order(local_queue: LocalQueue):
    await local_queue.add_task({"n": 1})
    await local_queue.add_task({"n": 2})
    assert local_queue.pending_count() == 2

    first = await local_queue.get_task()
    second = await local_queue.get_task()

    assert first.body == {"n": 1}
    assert second.body == {"n": 2}
    assert local_queue.pending_count() == 0
    assert await local_queue.get_task() is None


async def test_ack_removes_claimed_task(local_queue: LocalQueue):
    await local_queue.add_task({"n": 1})
    task = await local_queue.get_task()

    await local_queue.ack(task)

    assert not Path(task.receipt).exists()
    assert await local_queue.recover() == 0


async def test_release_makes_task_available_again(local_queue: LocalQueue):
    await local_queue.add_task({"n": 1})
    task = await local_queue.get_task()

    await local_queue.release(task)

    again = await local_queue.get_task()
    assert again.body == {"n": 1}


async def test_recover_requeues_unacknowledged_tasks(local_queue: LocalQueue):
    await local_queue.add_task({"n": 1})
    await local_queue.add_task({"n": 2})
    await local_queue.get_task()
    await local_queue.get_task()

    # Simulates a worker restart after a crash
    restarted = LocalQueue(local_queue.queue_dir)
    assert await restarted.recover() == 2
    assert restarted.pending_count() == 2


async def test_full_queue_rejects_task(tmp_path: Path):
    queue = LocalQueue(tmp_path / "bounded", max_pending=2)
    await queue.add_task({"n": 1})
    await queue.add_task({"n": 2})

    with pytest.raises(QueueEnqueueError):
        await queue.add_task({"n": 3})
    assert queue.pending_count() == 2


async def test_unserializable_task_is_rejected(local_queue: LocalQueue):
    with pytest.raises(QueueEnqueueError):
        await local_queue.add_task({"file": object()})
    assert local_queue.pending_count() == 0


async def test_malformed_task_file_is_set_aside(local_queue: LocalQueue):
    (local_queue.queue_dir / "0000_broken.json").write_text("{not json")
    await local_queue.add_task({"n": 1})

    task = await local_queue.get_task()

    assert task.body == {"n": 1}
    assert (local_queue.queue_dir / "errors" / "0000_broken.json").exists()


def test_factory_builds_local_queue_for_local_dev(tmp_path: Path):
    settings = Settings(deployment_mode="local-dev", FOLDER_PATH=str(tmp_path))
    queue = QueueFactory.get_queue_handler(settings)

    assert isinstance(queue, LocalQueue)
    assert queue.queue_dir == tmp_path / "queue_data"


def test_factory_builds_sqs_queue_for_aws_modes(tmp_path: Path):
    queue_url = "https://sqs.us-east-1.amazonaws.com/123456789012/thumbnail-generation"
    settings = Settings(deployment_mode="aws-mock", FOLDER_PATH=str(tmp_path), SQS_QUEUE_URL=queue_url)
    queue = QueueFactory.get_queue_handler(settings)

    assert isinstance(queue, SQSQueue)
    assert queue.queue_url == queue_url
