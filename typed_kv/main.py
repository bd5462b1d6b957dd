from __future__ import annotations

import logging

from typed_kv.application.accessor import TypedAccessor
from typed_kv.application.ports import StoreClientPort
from typed_kv.infrastructure.config import Settings, load_settings
from typed_kv.infrastructure.logging import configure_logging
from typed_kv.infrastructure.memory_store import InMemoryStoreClient
from typed_kv.infrastructure.redis_store import RedisStoreClient

logger = logging.getLogger(__name__)


def build_store_client(settings: Settings) -> StoreClientPort:
    if settings.backend == "redis":
        return RedisStoreClient.from_url(
            settings.redis_url,
            socket_timeout=settings.redis_socket_timeout,
            socket_connect_timeout=settings.redis_socket_timeout,
        )
    return InMemoryStoreClient(
        max_items=settings.memory_max_items,
        cleanup_interval=settings.memory_cleanup_interval,
    )


def build_accessor(
    settings: Settings | None = None,
    *,
    configure_logs: bool = False,
) -> TypedAccessor:
    settings = settings or load_settings()
    if configure_logs:
        configure_logging(settings.log_level, settings.log_format)

    client = build_store_client(settings)
    logger.info("Typed accessor ready (backend=%s)", settings.backend)
    return TypedAccessor(client)
