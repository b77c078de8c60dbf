"""
Per-car schedule lock.

Serializes the check-then-insert of reservations on one car. A process-local
mutex is always taken; when REDIS_URL is configured a ``SET NX EX`` key is
taken as well so workers in other processes are serialized too. Redis errors
fail open (logged and counted) and leave the local mutex plus the database
exclusion constraint as the guard.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Dict, Iterator, Optional

from redis import Redis

from marketplace.core.config import settings
from marketplace.core.exceptions import ResourceBusyException
from marketplace.monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

_LOCAL_LOCKS: Dict[str, threading.Lock] = {}
_LOCAL_LOCKS_GUARD = threading.Lock()

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()

_REDIS_POLL_SECONDS = 0.05


def _lock_key(resource_id: str) -> str:
    return f"marketplace:lock:car:{resource_id}:schedule"


def _local_lock(resource_id: str) -> threading.Lock:
    with _LOCAL_LOCKS_GUARD:
        lock = _LOCAL_LOCKS.get(resource_id)
        if lock is None:
            lock = threading.Lock()
            _LOCAL_LOCKS[resource_id] = lock
        return lock


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if not settings.redis_url:
        return None
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            client.ping()
        except Exception as exc:
            logger.warning("resource_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def _acquire_redis(client: Redis, resource_id: str, ttl_s: int, deadline: float) -> bool:
    """Poll ``SET NX`` until acquired or the deadline passes. Errors fail open."""
    while True:
        try:
            acquired = bool(
                client.set(_lock_key(resource_id), str(time.time()), nx=True, ex=ttl_s)
            )
        except Exception as exc:
            prometheus_metrics.record_resource_lock("redis", "acquire", "error")
            logger.warning(
                "resource_lock_redis_acquire_failed",
                extra={
                    "resource_id": resource_id,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            return True
        if acquired:
            prometheus_metrics.record_resource_lock("redis", "acquire", "success")
            return True
        if time.monotonic() >= deadline:
            prometheus_metrics.record_resource_lock("redis", "acquire", "blocked")
            return False
        time.sleep(_REDIS_POLL_SECONDS)


def _release_redis(client: Redis, resource_id: str) -> None:
    try:
        deleted = client.delete(_lock_key(resource_id))
        outcome = "success" if deleted else "not_found"
        prometheus_metrics.record_resource_lock("redis", "release", outcome)
    except Exception as exc:
        prometheus_metrics.record_resource_lock("redis", "release", "error")
        logger.warning(
            "resource_lock_redis_release_failed",
            extra={
                "resource_id": resource_id,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )


@contextmanager
def resource_lock(
    resource_id: str,
    *,
    ttl_s: Optional[int] = None,
    wait_s: Optional[float] = None,
) -> Iterator[None]:
    """
    Hold the schedule lock for ``resource_id`` for the duration of the block.

    Raises:
        ResourceBusyException: if the lock is not obtained within ``wait_s``
    """
    ttl = ttl_s if ttl_s is not None else settings.resource_lock_ttl_seconds
    wait = wait_s if wait_s is not None else settings.resource_lock_wait_seconds
    started = time.monotonic()
    deadline = started + wait

    local = _local_lock(resource_id)
    if not local.acquire(timeout=wait):
        prometheus_metrics.record_resource_lock("local", "acquire", "blocked")
        raise ResourceBusyException(resource_id, round(time.monotonic() - started, 3))
    prometheus_metrics.record_resource_lock("local", "acquire", "success")

    client = None
    try:
        client = _get_sync_redis()
        if client is not None and not _acquire_redis(client, resource_id, ttl, deadline):
            client = None
            raise ResourceBusyException(resource_id, round(time.monotonic() - started, 3))
        yield
    finally:
        if client is not None:
            _release_redis(client, resource_id)
        local.release()
