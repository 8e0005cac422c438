# ===== soro/services/scheduler/pass_lease.py =====
"""
Single-flight leases for lifecycle scheduler passes.

A pass runs only while it holds the lease for its name; a second runner
that cannot obtain it returns immediately instead of waiting.
"""
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterator, Optional
import logging
import threading
import uuid

from redis import Redis
from redis.exceptions import RedisError

from soro.config.redis import RedisKeys

logger = logging.getLogger(__name__)

# Delete the key only if it still holds our token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class PassLease(ABC):

    @abstractmethod
    def acquire(self, pass_name: str) -> Optional[str]:
        """Return a release token, or None when another runner holds the lease"""

    @abstractmethod
    def release(self, pass_name: str, token: str) -> None:
        ...

    @contextmanager
    def hold(self, pass_name: str) -> Iterator[bool]:
        token = self.acquire(pass_name)
        try:
            yield token is not None
        finally:
            if token is not None:
                self.release(pass_name, token)


class RedisPassLease(PassLease):
    """SET NX EX lease shared by every worker using the same Redis"""

    def __init__(self, client: Redis, ttl_seconds: int = 600):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _key(pass_name: str) -> str:
        return RedisKeys.SCHEDULER_PASS_LEASE.format(pass_name=pass_name)

    def acquire(self, pass_name: str) -> Optional[str]:
        token = uuid.uuid4().hex
        try:
            acquired = self.client.set(self._key(pass_name), token, nx=True, ex=self.ttl_seconds)
        except RedisError as e:
            # Treated as held elsewhere; the pass runs again on the next tick
            logger.warning(f"Could not acquire lease for pass {pass_name}: {e}")
            return None
        return token if acquired else None

    def release(self, pass_name: str, token: str) -> None:
        try:
            self.client.eval(_RELEASE_SCRIPT, 1, self._key(pass_name), token)
        except RedisError as e:
            logger.warning(f"Could not release lease for pass {pass_name}, it expires in {self.ttl_seconds}s: {e}")


class InProcessPassLease(PassLease):
    """Per-pass non-blocking locks for a single process"""

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, pass_name: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(pass_name, threading.Lock())

    def acquire(self, pass_name: str) -> Optional[str]:
        if self._lock_for(pass_name).acquire(blocking=False):
            return pass_name
        return None

    def release(self, pass_name: str, token: str) -> None:
        self._lock_for(pass_name).release()
