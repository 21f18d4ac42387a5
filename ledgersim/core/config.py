"""
ledgersim: Harness Configuration

Immutable configuration for a harness run. Every knob a scenario or the
context store reads flows through here.
"""
import hashlib
import os
from dataclasses import dataclass
from typing import Literal

ContextBackendName = Literal["memory", "redis"]

ENV_PREFIX = "LEDGERSIM_"

@dataclass(frozen=True)
class HarnessConfig:
    """
    Immutable configuration for a harness run.
    """
    config_hash: str = "auto"                   # Hash of the config snapshot
    log_level: str = "INFO"
    context_backend: ContextBackendName = "memory"
    redis_url: str = "redis://localhost:6379/0"
    initial_epoch: int = 0
    initial_epoch_timestamp_ms: int = 0

    def __post_init__(self):
        if self.context_backend not in ("memory", "redis"):
            raise ValueError(f"unknown context backend: {self.context_backend}")
        if self.initial_epoch < 0 or self.initial_epoch_timestamp_ms < 0:
            raise ValueError("epoch and epoch timestamp must be non-negative")
        if self.config_hash == "auto":
            object.__setattr__(self, "config_hash", self._compute_hash())

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """
        Builds a config from LEDGERSIM_* environment variables.
        """
        env = os.environ
        return cls(
            log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", "INFO"),
            context_backend=env.get(f"{ENV_PREFIX}CONTEXT_BACKEND", "memory"),
            redis_url=env.get(f"{ENV_PREFIX}REDIS_URL", "redis://localhost:6379/0"),
            initial_epoch=int(env.get(f"{ENV_PREFIX}EPOCH", "0")),
            initial_epoch_timestamp_ms=int(env.get(f"{ENV_PREFIX}EPOCH_TIMESTAMP_MS", "0")),
        )

    def verify_hash(self) -> bool:
        """
        Recomputes config hash and verifies integrity.
        """
        return self._compute_hash() == self.config_hash

    def _compute_hash(self) -> str:
        data = (
            f"{self.log_level}:{self.context_backend}:{self.redis_url}:"
            f"{self.initial_epoch}:{self.initial_epoch_timestamp_ms}"
        )
        return hashlib.sha256(data.encode()).hexdigest()[:16]
