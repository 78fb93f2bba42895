import os
from dataclasses import dataclass, field
from typing import Any


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class CacheConfig:
    """Configuration for the remote video cache (Prebid Cache compatible)."""
    url: str = ""
    timeout: float = 1.0  # Seconds, per store call

    # Adds bidder / bidid / aid to every stored payload
    vasttrack: bool = False

    # Batching
    batch_size: Any = 1       # Max bids per store call
    batch_timeout: Any = 0    # Debounce window in ms (0 = next loop turn)

    # Keep VAST in-process as a data URI instead of calling the cache server
    use_local: bool = False

    @property
    def effective_batch_size(self) -> int:
        """Non-positive or non-numeric sizes fall back to 1."""
        size = self.batch_size
        if isinstance(size, bool) or not isinstance(size, (int, float)) or size <= 0:
            return 1
        return int(size)

    @property
    def effective_batch_timeout(self) -> float:
        """Debounce window in ms. Non-positive or non-numeric values mean no wait."""
        timeout = self.batch_timeout
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            return 0
        return timeout


@dataclass(frozen=True)
class EngineConfig:
    """Master configuration for the Video Cache Engine."""
    cache: CacheConfig = field(default_factory=CacheConfig)

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

    service_name: str = "videocache"

    @classmethod
    def from_env(cls, environ=None) -> "EngineConfig":
        """
        Build a config from VIDEOCACHE_* environment variables.
        Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        defaults = CacheConfig()
        cache = CacheConfig(
            url=env.get("VIDEOCACHE_URL", defaults.url),
            timeout=float(env.get("VIDEOCACHE_TIMEOUT", defaults.timeout)),
            vasttrack=_env_bool(env.get("VIDEOCACHE_VASTTRACK", "false")),
            batch_size=int(env.get("VIDEOCACHE_BATCH_SIZE", defaults.batch_size)),
            batch_timeout=float(env.get("VIDEOCACHE_BATCH_TIMEOUT", defaults.batch_timeout)),
            use_local=_env_bool(env.get("VIDEOCACHE_USE_LOCAL", "false")),
        )
        return cls(cache=cache, log_level=env.get("VIDEOCACHE_LOG_LEVEL", cls.log_level))


# Global singleton config instance
config = EngineConfig()
