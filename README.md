# notifyhub

notifyhub is an asyncio library for a queue-backed notification service. It
accepts notification requests over HTTP, records them as `pending`, and puts
them on a Redis list. Background workers take jobs off that list and pass each
one to the worker registered for its channel. Push notifications are sent
through Firebase Cloud Messaging (FCM).

## How a notification flows

1. A client posts a JSON body to `POST /notification/send`. The handler is
   `NotificationController.send`, mounted by `notifyhub.web.create_app(service)`,
   which returns an `aiohttp.web.Application`.
   - The body is read with `NotificationRequest.from_dict`. If it is not valid
     JSON, or a field is missing or has the wrong type, the reply is status 400
     with the text `Json deserialize error: ...`.
2. `NotificationService.send` checks the payload for its channel. The checks
   are in `notifyhub.payload`:
   - **push**: string `title` and `body` fields. The request must also carry a
     `recipient_type` of `token`, `topic` or `condition`.
   - **email**: string `subject` and `content` fields, an optional string
     `content_type` and an optional object `variables`. The request must also
     carry a non-empty `sender`.
   - **sms**: always rejected.

   A rejected request raises `ServiceError("invalid_data_field", ...)`. The
   controller replies with status 500 and a `{"messages": "<reason>"}` body.
3. `NotificationRepo.insert` stores the notification with status `pending` and
   returns its new UUID.
4. A `NotificationEnQueue` job is pushed, as compact JSON, onto the Redis list
   named by `QUEUE_KEY`. The reply is
   `{"id": "<notification id>", "status": "queued"}`.
   - A database failure is reported as status 500 with
     `{"messages": "Database query failed"}`.
   - A Redis failure is reported as status 500 with
     `{"messages": "Redis push failed"}`.
   - A missing `QUEUE_KEY` is reported as status 500 with an empty body.
5. `QueueWorker` pops jobs from the right end of the list and parses each one
   with `NotificationDeQueue.from_json`. It then calls `do_send` on the worker
   registered for the job's channel.
   - A job that cannot be parsed is pushed to `<QUEUE_KEY>_failed`. If the job
     still carries a string `notification_id`, that notification is marked
     `failed`.
   - A job for a channel with no registered worker stops the current pass with
     `DeliveryError("none_value")`. `QueueWorker.run` restarts the pass after
     `restart_delay` seconds.
   - When the queue is empty, the worker waits `idle_delay` seconds before it
     polls again. Both delays default to 10 seconds.
6. `NotificationWorkerActor` runs a `NotificationWorker` for each message.
   - If the worker raises `DeliveryError`, the job goes back on its queue with
     `retry_count` increased by one.
   - When `retry_count` reaches 3, the job is moved to `<QUEUE_KEY>_failed`
     and the notification is marked `failed`.
7. `PushWorker` posts the message built by `build_fcm_message` to
   `https://fcm.googleapis.com/v1/projects/<PROJECT_ID>/messages:send` with a
   bearer token.
   - A 2xx reply marks the notification `sent`.
   - A 401 reply makes it refresh the token once and then give up with
     `DeliveryError("request_failed")`.
   - Any other status also raises `DeliveryError("request_failed")`.

## Wiring the pieces together

```python
from notifyhub.config import create_redis_client
from notifyhub.repositories import NotificationRepo, RedisRepository
from notifyhub.service import NotificationService
from notifyhub.web import create_app

redis_repo = RedisRepository(create_redis_client())
noti_repo = NotificationRepo(pool, "queries")   # pool: see below
app = create_app(NotificationService(noti_repo, redis_repo))
```

`NotificationRepo` works with any database pool that has an awaitable
`execute(query, *args)`. The pool must use positional `$1`, `$2`, ...
parameters and return either a row count or a status tag such as `UPDATE 1`.

The SQL is read from two files in the directory you pass as `queries_dir`:

- `insert_noti.sql`, with the parameters id, user id, recipient, channel,
  template id and status;
- `update_notification_status.sql`, with the parameters status and id.

To run the delivery side, build a `NotificationWorkerActor` for each channel.
Pass them to `QueueWorker` as a mapping from channel name to actor, then call
`QueueWorker.start()` inside a running event loop. `QueueWorker.stop()` asks it
to finish after its current step. `NotificationWorkerActor.join()` waits for
the messages that are already scheduled.

`PushWorker(token_manager)` needs an object with `get_token()`, which returns
the current token or `None`, and an awaitable `update_token()`. `PushWorker` can
be used as an async context manager; on exit it closes the HTTP session it
opened itself.

## Configuration

Settings come from environment variables. `NotificationService`, `QueueWorker`
and `PushWorker` also accept an `env` mapping in place of `os.environ`.

| Variable       | Used for                                                       |
|----------------|----------------------------------------------------------------|
| `REDIS_URL`    | Redis connection (`config.redis_url`, `config.create_redis_client`) |
| `DATABASE_URL` | database location (`config.database_url`)                     |
| `QUEUE_KEY`    | name of the Redis list that holds jobs                         |
| `PROJECT_ID`   | Firebase project that push messages are sent to                |

If `REDIS_URL`, `DATABASE_URL` or `PROJECT_ID` is missing, a `RuntimeError` is
raised. A missing `QUEUE_KEY` raises `ServiceError` or `DeliveryError` with
kind `missing_env`.

## Checking payloads and building messages

```python
from notifyhub.models import NotificationChannel, NotificationDeQueue
from notifyhub.payload import validate_payload
from notifyhub.push_worker import build_fcm_message

validate_payload(NotificationChannel("push"), {"title": "Hi", "body": "Hello"})   # True
validate_payload(NotificationChannel("email"), {"subject": "Hi"})                 # False

job = NotificationDeQueue(
    notification_id="00000000-0000-0000-0000-000000000000",
    recipient="news",
    recipient_type="topic",
    channel="push",
    payload={"title": "Hi", "body": "Hello"},
)
build_fcm_message(job)
# {"message": {"topic": "news", "notification": {"title": "Hi", "body": "Hello"}}}
```

## What the package does not do

- It has no command to start it. You assemble the web application and the
  workers yourself and run them in your own event loop, for example with
  `aiohttp.web.run_app`.
- It ships no SQL files, no schema migrations and no database driver. You
  supply the query files and the pool.
- It has no e-mail delivery worker. E-mail requests are validated and queued,
  but nothing in the package sends them.
- It has no FCM access-token provider. The `token_manager` that `PushWorker`
  needs must come from elsewhere.