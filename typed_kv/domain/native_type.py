from __future__ import annotations

from enum import Enum
from typing import Optional, Union


class NativeType(Enum):
    """Structures a store can hold under a single key."""

    STRING = "string"
    LIST = "list"
    HASH = "hash"
    SET = "set"
    SORTED_SET = "zset"
    STREAM = "stream"
    OTHER = "other"

    @classmethod
    def from_tag(cls, tag: Union[str, bytes]) -> Optional["NativeType"]:
        """Map the tag reported by the store client; ``"none"`` means absent."""
        if isinstance(tag, bytes):
            tag = tag.decode("ascii", errors="replace")
        normalized = tag.strip().lower()
        if normalized == "none":
            return None
        try:
            return cls(normalized)
        except ValueError:
            return cls.OTHER

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", " ")


COLLECTION_TYPES = (
    NativeType.LIST,
    NativeType.HASH,
    NativeType.SET,
    NativeType.SORTED_SET,
)
