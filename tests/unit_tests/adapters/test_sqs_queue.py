import boto3
import pytest

from files_api.adapters.queue import SQSQueue
from files_api.errors import QueueEnqueueError
from tests.consts import TEST_QUEUE_NAME


@pytest.fixture
def sqs_client(mocked_aws):
    return boto3.client("sqs", region_name="us-east-1")


@pytest.fixture
def sqs_queue(sqs_client, sqs_queue_url):
    return SQSQueue(queue_url=sqs_queue_url, sqs_client=sqs_client, wait_time_seconds=0)


async def test_add_and_get_task(sqs_queue: SQSQueue):
    await sqs_queue.add_task({"task_type": "generate_thumbnails", "file_id": "f1", "user_id": "u1"})

    task = await sqs_queue.get_task()

    assert task is not None
    assert task.body["file_id"] == "f1"
    assert task.receipt


async def test_empty_queue_returns_none(sqs_queue: SQSQueue):
    assert await sqs_queue.get_task() is None


async def test_ack_deletes_message(sqs_queue: SQSQueue, sqs_client, sqs_queue_url):
    await sqs_queue.add_task({"n": 1})
    task = await sqs_queue.get_task()

    await sqs_queue.ack(task)

    attributes = sqs_client.get_queue_attributes(
        QueueUrl=sqs_queue_url,
        AttributeNames=["ApproximateNumberOfMessages", "ApproximateNumberOfMessagesNotVisible"],
    )["Attributes"]
    assert attributes["ApproximateNumberOfMessages"] == "0"
    assert attributes["ApproximateNumberOfMessagesNotVisible"] == "0"


async def test_release_makes_message_visible_again(sqs_queue: SQSQueue):
    await sqs_queue.add_task({"n": 1})
    task = await sqs_queue.get_task()

    await sqs_queue.release(task)

    again = await sqs_queue.get_task()
    assert again is not None
    assert again.body == {"n": 1}


async def test_malformed_message_is_dropped(sqs_queue: SQSQueue, sqs_client, sqs_queue_url):
    sqs_client.send_message(QueueUrl=sqs_queue_url, MessageBody="not json")

    assert await sqs_queue.get_task() is None
    assert await sqs_queue.get_task() is None


def test_queue_url_is_resolved_from_name(sqs_client, sqs_queue_url):
    queue = SQSQueue(queue_name=TEST_QUEUE_NAME, sqs_client=sqs_client)
    assert queue.queue_url == sqs_queue_url


def test_queue_needs_url_or_name(sqs_client):
    with pytest.raises(ValueError):
        SQSQueue(sqs_client=sqs_client)


async def test_send_failure_raises_enqueue_error(sqs_client):
    missing_queue_url = "https://sqs.us-east-1.amazonaws.com/123456789012/does-not-exist"
    queue = SQSQueue(queue_url=missing_queue_url, sqs_client=sqs_client, wait_time_seconds=0)

    with pytest.raises(QueueEnqueueError):
        await queue.add_task({"n": 1})
