from __future__ import annotations

import os
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


def get_env_int(
    env_name: str,
    default_value: int,
    *,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> int:
    raw_value = os.getenv(env_name)
    if raw_value is None:
        value = default_value
    else:
        try:
            value = int(raw_value)
        except ValueError as exc:
            raise ValueError(
                f"{env_name} must be an integer, got {raw_value!r}"
            ) from exc

    if min_value is not None and value < min_value:
        raise ValueError(f"{env_name} must be >= {min_value}, got {value}")
    if max_value is not None and value > max_value:
        raise ValueError(f"{env_name} must be <= {max_value}, got {value}")
    return value


def get_env_choice(env_name: str, default_value: str, choices: tuple[str, ...]) -> str:
    value = os.getenv(env_name, default_value).strip().lower()
    if value not in choices:
        raise ValueError(f"{env_name} must be one of {', '.join(choices)}, got {value!r}")
    return value


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    backend: Literal["memory", "redis"]
    redis_url: str
    redis_socket_timeout: int = Field(ge=1)
    memory_max_items: int = Field(ge=1)
    memory_cleanup_interval: int = Field(ge=1)
    log_level: str
    log_format: Literal["text", "json"]


def load_settings() -> Settings:
    return Settings(
        backend=get_env_choice("TYPED_KV_BACKEND", "memory", ("memory", "redis")),
        redis_url=os.getenv("TYPED_KV_REDIS_URL", "redis://localhost:6379/0"),
        redis_socket_timeout=get_env_int("TYPED_KV_REDIS_SOCKET_TIMEOUT", 5, min_value=1),
        memory_max_items=get_env_int("TYPED_KV_MEMORY_MAX_ITEMS", 10000, min_value=1),
        memory_cleanup_interval=get_env_int(
            "TYPED_KV_MEMORY_CLEANUP_INTERVAL", 10, min_value=1
        ),
        log_level=os.getenv("TYPED_KV_LOG_LEVEL", "INFO").upper(),
        log_format=get_env_choice("TYPED_KV_LOG_FORMAT", "text", ("text", "json")),
    )
