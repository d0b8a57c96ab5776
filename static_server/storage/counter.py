"""Page-view counter backed by Redis."""

import logging

import redis
from redis.backoff import NoBackoff
from redis.retry import Retry

from static_server.bootstrap.config import COUNTER_KEY_PREFIX
from static_server.domain.correlation_id import CorrelationLoggerAdapter

COUNTER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.storage.counter"), {}
)


class CounterBackendError(Exception):
    """Raised when the counter store cannot complete an increment."""


class CounterClient:
    """Atomic per-page counters stored under ``page.count.<page>``."""

    def __init__(self, client: redis.Redis, key_prefix: str = COUNTER_KEY_PREFIX):
        self._client = client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str) -> "CounterClient":
        """Connect lazily to ``url``; failed commands are not retried."""
        client = redis.Redis.from_url(url, retry=Retry(NoBackoff(), 0))
        return cls(client)

    def key_for(self, page: str) -> str:
        return self._key_prefix + page

    def increment(self, page: str) -> int:
        """Increment the page counter and return its new value."""
        key = self.key_for(page)
        try:
            return int(self._client.incr(key))
        except redis.RedisError as error:
            COUNTER_LOGGER.warning(
                "Counter increment failed",
                extra={
                    "event": "counter_increment_failed",
                    "page": page,
                    "error_type": type(error).__name__,
                },
            )
            raise CounterBackendError(str(error)) from error

    def close(self) -> None:
        self._client.close()
