"""Change notification fan-out for balance and vote-total updates.

Two topic families are published:

- ``balance:{user_id}`` carrying ``{"user_id", "balance"}`` after every
  ledger mutation for that user.
- ``votes:{issue_id}`` carrying the refreshed issue statistics after every
  recompute.

Publishing happens after the unit of work has committed, so a delivery
failure is logged and never rolls back ledger state.
"""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from collections.abc import Callable, Mapping
from threading import Lock
from typing import Any, Protocol

import redis

from quadvote.core.settings import settings

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, dict[str, Any]], None]
Unsubscribe = Callable[[], None]


def balance_topic(user_id: str) -> str:
    """Return the topic carrying balance changes for ``user_id``."""
    return f"balance:{user_id}"


def votes_topic(issue_id: str) -> str:
    """Return the topic carrying aggregate changes for ``issue_id``."""
    return f"votes:{issue_id}"


class ChangeNotifier(Protocol):
    """Publish/subscribe surface consumed by the ledger and voting engine."""

    def publish(self, topic: str, payload: Mapping[str, Any]) -> None: ...

    def subscribe(self, topic: str, callback: Subscriber) -> Unsubscribe: ...


class InMemoryChangeNotifier:
    """Process-local fan-out; suitable for a single worker and for tests."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscriber]] = defaultdict(list)
        self._lock = Lock()

    def publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(topic, ()))
        message = dict(payload)
        for callback in callbacks:
            try:
                callback(topic, message)
            except Exception as exc:
                logger.warning("Subscriber for %s raised: %s", topic, exc)

    def subscribe(self, topic: str, callback: Subscriber) -> Unsubscribe:
        with self._lock:
            self._subscribers[topic].append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                listeners = self._subscribers.get(topic)
                if listeners and callback in listeners:
                    listeners.remove(callback)
                if listeners is not None and not listeners:
                    self._subscribers.pop(topic, None)

        return _unsubscribe

    def subscriber_count(self, topic: str) -> int:
        """Return how many callbacks are registered for ``topic``."""
        with self._lock:
            return len(self._subscribers.get(topic, ()))


class RedisChangeNotifier:
    """Fan-out across processes through Redis pub/sub with JSON payloads."""

    def __init__(self, client: Any | None = None, url: str | None = None) -> None:
        self._redis = client or redis.from_url(url or settings.redis_url)  # type: ignore[no-untyped-call]

    def publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        try:
            self._redis.publish(topic, json.dumps(dict(payload)))
        except redis.RedisError as exc:
            logger.warning("Failed to publish change on %s: %s", topic, exc)

    def subscribe(self, topic: str, callback: Subscriber) -> Unsubscribe:
        pubsub = self._redis.pubsub(ignore_subscribe_messages=True)

        def _handle(message: Mapping[str, Any]) -> None:
            data = message.get("data")
            if isinstance(data, bytes):
                data = data.decode()
            try:
                payload = json.loads(data) if isinstance(data, str) else {}
            except ValueError:
                logger.warning("Dropping malformed change payload on %s", topic)
                return
            callback(topic, payload)

        pubsub.subscribe(**{topic: _handle})
        worker = pubsub.run_in_thread(sleep_time=0.1, daemon=True)

        def _unsubscribe() -> None:
            worker.stop()
            pubsub.close()

        return _unsubscribe


def build_notifier(backend: str | None = None) -> ChangeNotifier:
    """Construct the notifier selected by ``NOTIFY_BACKEND``."""
    choice = (backend or settings.notify_backend).lower()
    if choice == "redis":
        return RedisChangeNotifier()
    if choice == "memory":
        return InMemoryChangeNotifier()
    raise ValueError(f"Unknown notification backend: {choice!r}")


class _NotifierSingleton:
    """Singleton wrapper for the configured notifier."""

    _instance: ChangeNotifier | None = None

    @classmethod
    def get_instance(cls) -> ChangeNotifier:
        """Get or create the process-wide notifier."""
        if cls._instance is None:
            cls._instance = build_notifier()
        return cls._instance


def get_notifier() -> ChangeNotifier:
    """Return the process-wide change notifier."""
    return _NotifierSingleton.get_instance()
