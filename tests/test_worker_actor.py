import json

import pytest
from redis.exceptions import RedisError

from notifyhub.errors import DeliveryError
from notifyhub.models import NotificationDeQueue
from notifyhub.worker_actor import (
    NotificationMessage,
    NotificationWorker,
    NotificationWorkerActor,
)

NOTIFICATION_ID = "6f1c2b8e-0000-4000-8000-000000000001"


class FakeWorker(NotificationWorker):
    def __init__(self, error=None):
        self.error = error
        self.sent = []

    async def send(self, notification, repo):
        self.sent.append((notification, repo))
        if self.error is not None:
            raise self.error


class FakeRedisRepo:
    def __init__(self, fail=False):
        self.fail = fail
        self.pushed = []

    async def push_to_queue(self, key, value):
        if self.fail:
            raise RedisError("down")
        self.pushed.append((key, value))


class FakeNotiRepo:
    def __init__(self, fail=False):
        self.fail = fail
        self.updates = []

    async def update_notification_status(self, notification_id, status):
        if self.fail:
            raise RuntimeError("db down")
        self.updates.append((notification_id, status))
        return 1


def make_notification(retry_count=0):
    return NotificationDeQueue(
        notification_id=NOTIFICATION_ID,
        recipient="device",
        channel="push",
        recipient_type="token",
        payload={"title": "t", "body": "b"},
        retry_count=retry_count,
    )


@pytest.mark.asyncio
async def test_successful_send_pushes_nothing():
    worker = FakeWorker()
    redis_repo = FakeRedisRepo()
    noti_repo = FakeNotiRepo()
    actor = NotificationWorkerActor(worker, noti_repo, redis_repo)
    await actor.handle(NotificationMessage(make_notification(), "jobs"))
    assert len(worker.sent) == 1
    assert worker.sent[0][1] is noti_repo
    assert redis_repo.pushed == []
    assert noti_repo.updates == []


@pytest.mark.asyncio
async def test_failed_send_is_requeued_with_incremented_retry():
    redis_repo = FakeRedisRepo()
    noti_repo = FakeNotiRepo()
    actor = NotificationWorkerActor(
        FakeWorker(DeliveryError("request_failed")), noti_repo, redis_repo
    )
    await actor.handle(NotificationMessage(make_notification(0), "jobs"))
    assert len(redis_repo.pushed) == 1
    key, value = redis_repo.pushed[0]
    assert key == "jobs"
    restored = NotificationDeQueue.from_json(value)
    assert restored.retry_count == 1
    assert restored.notification_id == NOTIFICATION_ID
    assert noti_repo.updates == []


@pytest.mark.asyncio
async def test_third_failure_moves_job_to_failed_queue():
    redis_repo = FakeRedisRepo()
    noti_repo = FakeNotiRepo()
    actor = NotificationWorkerActor(
        FakeWorker(DeliveryError("request_failed")), noti_repo, redis_repo
    )
    await actor.handle(NotificationMessage(make_notification(2), "jobs"))
    assert [key for key, _ in redis_repo.pushed] == ["jobs_failed"]
    assert json.loads(redis_repo.pushed[0][1])["retry_count"] == 3
    assert noti_repo.updates == [(NOTIFICATION_ID, "failed")]


@pytest.mark.asyncio
async def test_status_is_updated_even_if_failed_queue_push_fails():
    noti_repo = FakeNotiRepo()
    actor = NotificationWorkerActor(
        FakeWorker(DeliveryError("none_value")), noti_repo, FakeRedisRepo(fail=True)
    )
    await actor.handle(NotificationMessage(make_notification(2), "jobs"))
    assert noti_repo.updates == [(NOTIFICATION_ID, "failed")]


@pytest.mark.asyncio
async def test_update_failure_is_swallowed():
    redis_repo = FakeRedisRepo()
    actor = NotificationWorkerActor(
        FakeWorker(DeliveryError("none_value")), FakeNotiRepo(fail=True), redis_repo
    )
    await actor.handle(NotificationMessage(make_notification(2), "jobs"))
    assert [key for key, _ in redis_repo.pushed] == ["jobs_failed"]


@pytest.mark.asyncio
async def test_original_message_is_not_mutated():
    notification = make_notification(1)
    actor = NotificationWorkerActor(
        FakeWorker(DeliveryError("request")), FakeNotiRepo(), FakeRedisRepo()
    )
    await actor.handle(NotificationMessage(notification, "jobs"))
    assert notification.retry_count == 1


@pytest.mark.asyncio
async def test_do_send_and_join_process_all_messages():
    worker = FakeWorker()
    actor = NotificationWorkerActor(worker, FakeNotiRepo(), FakeRedisRepo())
    for _ in range(3):
        actor.do_send(NotificationMessage(make_notification(), "jobs"))
    await actor.join()
    assert len(worker.sent) == 3