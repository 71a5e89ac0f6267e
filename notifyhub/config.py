"""Connection settings read from the environment."""

from __future__ import annotations

import os
from typing import Mapping, Optional

import redis.asyncio as aioredis


def _environment(env: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return os.environ if env is None else env


def redis_url(env: Optional[Mapping[str, str]] = None) -> str:
    """Return ``REDIS_URL``; raise RuntimeError when it is not set."""
    try:
        return _environment(env)["REDIS_URL"]
    except KeyError:
        raise RuntimeError("REDIS URL must be set") from None


def database_url(env: Optional[Mapping[str, str]] = None) -> str:
    """Return ``DATABASE_URL``; raise RuntimeError when it is not set."""
    try:
        return _environment(env)["DATABASE_URL"]
    except KeyError:
        raise RuntimeError("DATABASE_URL must be set") from None


def create_redis_client(env: Optional[Mapping[str, str]] = None) -> aioredis.Redis:
    """Create a pooled asyncio Redis client for ``REDIS_URL``."""
    url = redis_url(env)
    try:
        return aioredis.from_url(url, decode_responses=True)
    except ValueError as exc:
        raise RuntimeError("Cannot create redis pool") from exc