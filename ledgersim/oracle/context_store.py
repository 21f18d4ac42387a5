"""
ledgersim Oracle: Context Store

Long-lived keyed stash carrying pre-call snapshots into post-call checks.
One store per harness run; it outlives every transaction boundary.

Keys are flat and caller-chosen. Unrelated invariants sharing a store should
build keys with namespaced_key() to avoid collisions.
"""
import json
from collections.abc import Mapping, MutableMapping
from typing import Any, Dict, Iterator, Optional, Tuple
import redis
from pydantic import BaseModel
from ..core.config import HarnessConfig
from ..core.errors import ObjectNotFound, OwnershipViolation
from ..core.hashing import DecimalEncoder
from ..core.logger import get_logger
from ..core.types import ObjectId
from ..runtime.context import ExecutionContext

logger = get_logger("ContextStore")

def namespaced_key(namespace: str, key: str) -> str:
    return f"{namespace}::{key}"

class InMemoryBackend(MutableMapping):
    """Plain dict storage. Values are kept as-is."""
    def __init__(self):
        self._entries: Dict[str, Any] = {}

    def __getitem__(self, key: str) -> Any:
        return self._entries[key]

    def __setitem__(self, key: str, value: Any):
        self._entries[key] = value

    def __delitem__(self, key: str):
        del self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

class RedisBackend(MutableMapping):
    """
    Entries of one store as a Redis hash.
    Values are JSON-encoded; Decimal values come back as strings.
    """
    PREFIX = "ledgersim:context"

    def __init__(self, handle: ObjectId, redis_url: str = "redis://localhost:6379/0", client=None):
        self.redis = client if client is not None else redis.from_url(redis_url, decode_responses=True)
        self.key = f"{self.PREFIX}:{handle}"

    def __getitem__(self, key: str) -> Any:
        raw = self.redis.hget(self.key, key)
        if raw is None:
            raise KeyError(key)
        return json.loads(raw)

    def __setitem__(self, key: str, value: Any):
        self.redis.hset(self.key, key, json.dumps(value, cls=DecimalEncoder))

    def __delitem__(self, key: str):
        if not self.redis.hdel(self.key, key):
            raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        return bool(self.redis.hexists(self.key, key))

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.redis.hkeys(self.key)))

    def __len__(self) -> int:
        return int(self.redis.hlen(self.key))

    def clear(self):
        self.redis.delete(self.key)

class ReadOnlyEntries(Mapping):
    """Read view over a backend. Missing keys raise KeyError."""
    def __init__(self, entries: MutableMapping):
        self._entries = entries

    def __getitem__(self, key: str) -> Any:
        return self._entries[key]

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

class AdminCap(BaseModel):
    """Capability required to tear a store down."""
    id: ObjectId
    store_id: ObjectId

class ContextStore:
    """
    Singleton keyed mapping addressed by its handle.
    Entries are never removed implicitly.
    """
    def __init__(self, handle: ObjectId, backend: Optional[MutableMapping] = None):
        self.handle = handle
        self._entries = backend if backend is not None else InMemoryBackend()
        self._destroyed = False

    def borrow_state(self, handle: ObjectId) -> Mapping:
        self._check_handle(handle)
        return ReadOnlyEntries(self._entries)

    def borrow_mut_state(self, handle: ObjectId) -> MutableMapping:
        self._check_handle(handle)
        return self._entries

    def destroy(self, cap: AdminCap):
        """
        Privileged teardown. Every later borrow fails.
        """
        if cap.store_id != self.handle:
            raise OwnershipViolation("admin capability does not belong to this store", cap_id=cap.id, handle=self.handle)
        self._check_handle(self.handle)
        self._entries.clear()
        self._destroyed = True
        logger.warning("context_store_destroyed", handle=self.handle)

    def _check_handle(self, handle: ObjectId):
        if self._destroyed or handle != self.handle:
            raise ObjectNotFound("context store not found", handle=handle)

def build_context_backend(config: HarnessConfig, handle: ObjectId) -> MutableMapping:
    if config.context_backend == "redis":
        return RedisBackend(handle, redis_url=config.redis_url)
    return InMemoryBackend()

def init_context_store(
    ctx: ExecutionContext,
    backend: Optional[MutableMapping] = None,
    config: Optional[HarnessConfig] = None,
) -> Tuple[ContextStore, AdminCap]:
    """
    Creates the store once, at system initialization. Ids come from `ctx`.
    """
    handle = ctx.fresh_id()
    cap = AdminCap(id=ctx.fresh_id(), store_id=handle)
    if backend is None:
        backend = build_context_backend(config or HarnessConfig(), handle)
    logger.info("context_store_initialized", handle=handle, backend=type(backend).__name__)
    return ContextStore(handle, backend), cap
