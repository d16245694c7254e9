"""Build the configured session store backend."""

from __future__ import annotations

import logging

from strategy_lab.core.config import Settings
from strategy_lab.core.enums import StoreBackend
from strategy_lab.core.errors import ConfigError

from .session_store import ISessionStore, InMemorySessionStore, JsonFileSessionStore

logger = logging.getLogger(__name__)


def build_session_store(settings: Settings) -> ISessionStore:
    """Instantiate the backend named by ``settings.store.backend``."""
    cfg = settings.store
    if cfg.backend == StoreBackend.MEMORY:
        store: ISessionStore = InMemorySessionStore()
    elif cfg.backend == StoreBackend.FILE:
        store = JsonFileSessionStore(cfg.data_dir)
    elif cfg.backend == StoreBackend.REDIS:
        from .redis_store import RedisSessionStore

        store = RedisSessionStore(cfg.redis_url, prefix=cfg.redis_prefix)
    else:
        raise ConfigError(f"Unsupported store backend: {cfg.backend!r}")

    logger.info("Session store backend: %s", cfg.backend.value)
    return store
