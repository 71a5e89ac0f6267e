import asyncio
import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from notifyhub.errors import DeliveryError
from notifyhub.queue_worker import QueueWorker

ENV = {"QUEUE_KEY": "jobs"}
NOTIFICATION_ID = "6f1c2b8e-0000-4000-8000-000000000002"


def job(channel="push", **extra):
    data = {
        "notification_id": NOTIFICATION_ID,
        "recipient": "device",
        "recipient_type": "token",
        "sender": None,
        "channel": channel,
        "template_id": None,
        "payload": {"title": "t", "body": "b"},
    }
    data.update(extra)
    return json.dumps(data)


class FakeRedisRepo:
    def __init__(self, jobs, on_empty=None, error=None):
        self.jobs = list(jobs)
        self.on_empty = on_empty
        self.error = error
        self.pushed = []
        self.popped_keys = []

    async def pop_from_queue(self, key):
        self.popped_keys.append(key)
        if self.error is not None:
            raise self.error
        if self.jobs:
            return self.jobs.pop(0)
        if self.on_empty is not None:
            self.on_empty()
        return None

    async def push_to_queue(self, key, value):
        self.pushed.append((key, value))


class FakeNotiRepo:
    def __init__(self):
        self.updates = []

    async def update_notification_status(self, notification_id, status):
        self.updates.append((notification_id, status))
        return 1


class FakeRecipient:
    def __init__(self):
        self.messages = []

    def do_send(self, message):
        self.messages.append(message)


def make_worker(jobs, workers=None, env=ENV, error=None):
    redis_repo = FakeRedisRepo(jobs, error=error)
    noti_repo = FakeNotiRepo()
    worker = QueueWorker(
        redis_repo,
        noti_repo,
        workers if workers is not None else {"push": FakeRecipient()},
        env=env,
        idle_delay=0,
        restart_delay=0,
    )
    redis_repo.on_empty = worker.stop
    return worker, redis_repo, noti_repo


@pytest.mark.asyncio
async def test_valid_job_is_dispatched_to_channel_worker():
    push = FakeRecipient()
    worker, redis_repo, _ = make_worker([job()], {"push": push})
    await worker.process_notifications()
    assert len(push.messages) == 1
    message = push.messages[0]
    assert message.queue_key == "jobs"
    assert message.notification.notification_id == NOTIFICATION_ID
    assert message.notification.retry_count == 0
    assert redis_repo.popped_keys[0] == "jobs"


@pytest.mark.asyncio
async def test_unparseable_job_goes_to_failed_queue():
    worker, redis_repo, noti_repo = make_worker(["not json"])
    await worker.process_notifications()
    assert redis_repo.pushed == [("jobs_failed", "not json")]
    assert noti_repo.updates == []


@pytest.mark.asyncio
async def test_malformed_job_with_id_is_marked_failed():
    bad = json.dumps({"notification_id": NOTIFICATION_ID, "channel": "push"})
    worker, redis_repo, noti_repo = make_worker([bad])
    await worker.process_notifications()
    assert redis_repo.pushed == [("jobs_failed", bad)]
    assert noti_repo.updates == [(NOTIFICATION_ID, "failed")]


@pytest.mark.asyncio
async def test_json_array_job_is_not_marked():
    worker, redis_repo, noti_repo = make_worker(["[1, 2]"])
    await worker.process_notifications()
    assert redis_repo.pushed == [("jobs_failed", "[1, 2]")]
    assert noti_repo.updates == []


@pytest.mark.asyncio
async def test_unknown_channel_raises_none_value():
    worker, _, _ = make_worker([job(channel="sms")])
    with pytest.raises(DeliveryError) as info:
        await worker.process_notifications()
    assert info.value.kind == "none_value"


@pytest.mark.asyncio
async def test_missing_queue_key_raises():
    worker, _, _ = make_worker([], env={})
    with pytest.raises(DeliveryError) as info:
        await worker.process_notifications()
    assert info.value.kind == "missing_env"


@pytest.mark.asyncio
async def test_pop_errors_are_mapped():
    worker, _, _ = make_worker([], error=ResponseError("wrong type"))
    with pytest.raises(DeliveryError) as info:
        await worker.process_notifications()
    assert info.value.kind == "redis_pop"

    worker, _, _ = make_worker([], error=RedisConnectionError("refused"))
    with pytest.raises(DeliveryError) as info:
        await worker.process_notifications()
    assert info.value.kind == "redis_connection"


@pytest.mark.asyncio
async def test_run_restarts_after_crash():
    push = FakeRecipient()
    worker, _, _ = make_worker([job(channel="sms"), job()], {"push": push})
    await asyncio.wait_for(worker.run(), timeout=5)
    assert [m.notification.channel for m in push.messages] == ["push"]
    assert worker.running is False


@pytest.mark.asyncio
async def test_start_and_stop():
    push = FakeRecipient()
    redis_repo = FakeRedisRepo([job(), job()])
    worker = QueueWorker(redis_repo, FakeNotiRepo(), {"push": push}, env=ENV, idle_delay=0)
    task = worker.start()
    while len(push.messages) < 2:
        await asyncio.sleep(0)
    worker.stop()
    await asyncio.wait_for(task, timeout=5)
    assert task.done()
    assert len(push.messages) == 2