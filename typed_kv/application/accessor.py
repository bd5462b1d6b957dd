from __future__ import annotations

import functools
import logging
from collections.abc import Mapping, Set
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar, Union

from typed_kv.domain.errors import (
    InvalidArgumentError,
    KeyNotFoundError,
    PersistenceError,
    TypeMismatchError,
    ValueLostError,
)
from typed_kv.domain.native_type import COLLECTION_TYPES, NativeType
from typed_kv.domain.validation import validate_key, validate_ttl
from typed_kv.domain.values import (
    ValueKind,
    classify_value,
    encode_leaf,
    is_integer_key,
    is_sequence_like,
    iter_elements,
    iter_items,
    parse_bool,
    parse_float,
    parse_int,
    to_float,
)

from .operation_context import operation_scope
from .ports import StoreClientPort

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

Collection = Union[Mapping[Any, Any], list, tuple, Set]
ArrayValue = Union[list, dict, set]


def _operation(func: F) -> F:
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        with operation_scope(func.__name__):
            return func(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


@dataclass(frozen=True)
class TypedAccessor:
    """Typed reads and writes over a connected key-value store client.

    Every read checks that the key exists, then that it holds the native
    structure the requested type needs, then converts the raw value. Every
    collection write deletes whatever the key held before, so a key never
    mixes native types. The calls issued for a single operation are not
    atomic: a concurrent writer may change the key between them.
    """

    client: StoreClientPort

    # Existence and metadata

    @_operation
    def exists(self, key: str) -> bool:
        validate_key(key)
        return bool(self.client.exists(key))

    @_operation
    def get_type(self, key: str) -> NativeType:
        validate_key(key)
        return self._native_type(key)

    @_operation
    def delete(self, key: str) -> None:
        validate_key(key)
        if not self.client.exists(key):
            raise KeyNotFoundError(key)
        self.client.delete(key)
        logger.debug("Deleted key %r", key)

    @_operation
    def set_ttl(self, key: str, ttl: int) -> None:
        validate_key(key)
        validate_ttl(ttl)
        if not self.client.exists(key):
            raise KeyNotFoundError(key)
        if ttl <= 0:
            logger.debug("Ignoring non-positive ttl=%d for key %r", ttl, key)
            return
        if not self.client.expire(key, ttl):
            raise KeyNotFoundError(key)
        logger.debug("Key %r expires in %d seconds", key, ttl)

    # Reads

    @_operation
    def get_string(self, key: str) -> str:
        validate_key(key)
        self._require(key, NativeType.STRING)
        return self._fetch_string(key)

    @_operation
    def get_int(self, key: str) -> int:
        return parse_int(key, self.get_string(key))

    @_operation
    def get_float(self, key: str) -> float:
        return parse_float(key, self.get_string(key))

    @_operation
    def get_boolean(self, key: str) -> bool:
        return parse_bool(self.get_string(key))

    @_operation
    def get_hash(self, key: str) -> dict[str, str]:
        validate_key(key)
        self._require(key, NativeType.HASH)
        return self._fetch_hash(key)

    @_operation
    def get_list(self, key: str) -> list[str]:
        validate_key(key)
        self._require(key, NativeType.LIST)
        return self._fetch_list(key)

    @_operation
    def get_set(self, key: str) -> set[str]:
        validate_key(key)
        self._require(key, NativeType.SET)
        return self._fetch_set(key)

    @_operation
    def get_sorted_set(self, key: str) -> list[str]:
        validate_key(key)
        self._require(key, NativeType.SORTED_SET)
        return self._fetch_sorted_set(key)

    @_operation
    def get_array(self, key: str) -> ArrayValue:
        validate_key(key)
        native_type = self._native_type(key)
        if native_type not in COLLECTION_TYPES:
            raise TypeMismatchError(key, native_type, COLLECTION_TYPES)
        return self._fetch_collection(key, native_type)

    @_operation
    def get(self, key: str) -> Union[str, ArrayValue]:
        validate_key(key)
        native_type = self._native_type(key)
        if native_type is NativeType.STRING:
            return self._fetch_string(key)
        if native_type in COLLECTION_TYPES:
            return self._fetch_collection(key, native_type)
        raise TypeMismatchError(key, native_type, COLLECTION_TYPES + (NativeType.STRING,))

    # Writes

    @_operation
    def set_string(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        self._check_write_args(key, ttl)
        if not isinstance(value, str):
            raise InvalidArgumentError(f"Expected a string, got '{type(value).__name__}'", value)
        self._write_string(key, value, ttl)

    @_operation
    def set_int(self, key: str, value: int, ttl: Optional[int] = None) -> None:
        self._check_write_args(key, ttl)
        if classify_value(value) is not ValueKind.INTEGER:
            raise InvalidArgumentError(f"Expected an integer, got '{type(value).__name__}'", value)
        self._write_string(key, encode_leaf(value), ttl)

    @_operation
    def set_float(self, key: str, value: float, ttl: Optional[int] = None) -> None:
        self._check_write_args(key, ttl)
        if classify_value(value) not in (ValueKind.FLOAT, ValueKind.INTEGER):
            raise InvalidArgumentError(f"Expected a float, got '{type(value).__name__}'", value)
        self._write_string(key, encode_leaf(to_float(value)), ttl)

    @_operation
    def set_boolean(self, key: str, value: bool, ttl: Optional[int] = None) -> None:
        self._check_write_args(key, ttl)
        if not isinstance(value, bool):
            raise InvalidArgumentError(f"Expected a boolean, got '{type(value).__name__}'", value)
        self._write_string(key, encode_leaf(value), ttl)

    @_operation
    def set_hash(self, key: str, value: Collection, ttl: Optional[int] = None) -> None:
        self._check_write_args(key, ttl)
        fields = {encode_leaf(field): encode_leaf(element) for field, element in iter_items(value)}
        self._replace(
            key,
            NativeType.HASH,
            len(fields),
            lambda: self.client.hset(key, fields),
            ttl,
        )

    @_operation
    def set_list(self, key: str, value: Collection, ttl: Optional[int] = None) -> None:
        """Store the elements in iteration order; mapping keys are discarded."""
        self._check_write_args(key, ttl)
        elements = [encode_leaf(element) for element in iter_elements(value)]
        self._replace(
            key,
            NativeType.LIST,
            len(elements),
            lambda: self.client.rpush(key, *elements),
            ttl,
        )

    @_operation
    def set_set(self, key: str, value: Collection, ttl: Optional[int] = None) -> None:
        self._check_write_args(key, ttl)
        members = [encode_leaf(element) for element in iter_elements(value)]
        self._replace(
            key,
            NativeType.SET,
            len(members),
            lambda: self.client.sadd(key, *members),
            ttl,
        )

    @_operation
    def set_sorted_set(self, key: str, value: Collection, ttl: Optional[int] = None) -> None:
        """Store members scored by their integer key (or position); other keys score 0."""
        self._check_write_args(key, ttl)
        if isinstance(value, Set):
            scored = {encode_leaf(member): 0 for member in value}
        else:
            scored = {}
            for score, member in iter_items(value):
                scored[encode_leaf(member)] = score if is_integer_key(score) else 0

        def write() -> bool:
            for member, score in scored.items():
                if not self.client.zadd(key, score, member):
                    return False
            return True

        self._replace(key, NativeType.SORTED_SET, len(scored), write, ttl)

    @_operation
    def set_array(self, key: str, value: Collection, ttl: Optional[int] = None) -> None:
        """Store a collection as a list when its keys run 0..n-1 in order, else as a hash.

        Sets carry no keys and are stored as sets.
        """
        if isinstance(value, Set):
            self.set_set(key, value, ttl)
        elif isinstance(value, Mapping) and not is_sequence_like(value):
            self.set_hash(key, value, ttl)
        elif isinstance(value, (Mapping, list, tuple)):
            self.set_list(key, value, ttl)
        else:
            raise InvalidArgumentError(
                f"Expected a collection, got '{type(value).__name__}'", value
            )

    @_operation
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        kind = classify_value(value)
        if kind is ValueKind.COLLECTION:
            self.set_array(key, value, ttl)
        elif kind is ValueKind.STRING:
            self.set_string(key, value, ttl)
        elif kind is ValueKind.INTEGER:
            self.set_int(key, value, ttl)
        elif kind is ValueKind.FLOAT:
            self.set_float(key, value, ttl)
        else:
            self.set_boolean(key, value, ttl)

    # Internals

    def _native_type(self, key: str) -> NativeType:
        if not self.client.exists(key):
            raise KeyNotFoundError(key)
        native_type = NativeType.from_tag(self.client.type(key))
        if native_type is None:
            # expired or deleted since the existence check
            raise KeyNotFoundError(key)
        return native_type

    def _require(self, key: str, expected: NativeType) -> None:
        native_type = self._native_type(key)
        if native_type is not expected:
            raise TypeMismatchError(key, native_type, (expected,))

    def _fetch_string(self, key: str) -> str:
        value = self.client.get(key)
        if value is None:
            raise KeyNotFoundError(key)
        return value

    def _fetch_hash(self, key: str) -> dict[str, str]:
        return dict(self.client.hgetall(key))

    def _fetch_list(self, key: str) -> list[str]:
        elements = []
        for index in range(self.client.llen(key)):
            element = self.client.lindex(key, index)
            if element is None:
                # list shrank while being read
                break
            elements.append(element)
        return elements

    def _fetch_set(self, key: str) -> set[str]:
        return set(self.client.smembers(key))

    def _fetch_sorted_set(self, key: str) -> list[str]:
        return list(self.client.zrange(key, 0, -1))

    def _fetch_collection(self, key: str, native_type: NativeType) -> ArrayValue:
        if native_type is NativeType.LIST:
            return self._fetch_list(key)
        if native_type is NativeType.HASH:
            return self._fetch_hash(key)
        if native_type is NativeType.SET:
            return self._fetch_set(key)
        return self._fetch_sorted_set(key)

    def _check_write_args(self, key: str, ttl: Optional[int]) -> None:
        validate_key(key)
        if ttl is not None:
            validate_ttl(ttl)

    def _write_string(self, key: str, value: str, ttl: Optional[int]) -> None:
        if not self.client.set(key, value):
            raise PersistenceError(key, "the store rejected the string value")
        logger.debug("Stored string under key %r", key)
        self._apply_ttl(key, ttl)

    def _replace(
        self,
        key: str,
        native_type: NativeType,
        size: int,
        write: Callable[[], bool],
        ttl: Optional[int],
    ) -> None:
        if size == 0:
            raise PersistenceError(key, f"an empty {native_type.label} cannot be stored")

        previous_type = self._delete_existing(key)
        try:
            accepted = write()
        except Exception:
            if previous_type is not None:
                logger.warning(
                    "Previous %s value of key %r lost: %s write failed",
                    previous_type.label,
                    key,
                    native_type.label,
                )
            raise

        if not accepted:
            reason = f"the store rejected the {native_type.label} value"
            # sorted sets are written member by member; drop a partial write
            if self.client.exists(key):
                self.client.delete(key)
            if previous_type is not None:
                logger.warning("Previous %s value of key %r lost: %s", previous_type.label, key, reason)
                raise ValueLostError(key, reason, previous_type)
            raise PersistenceError(key, reason)

        logger.debug("Stored %s of %d elements under key %r", native_type.label, size, key)
        self._apply_ttl(key, ttl)

    def _delete_existing(self, key: str) -> Optional[NativeType]:
        if not self.client.exists(key):
            return None
        previous_type = NativeType.from_tag(self.client.type(key))
        self.client.delete(key)
        logger.debug("Deleted previous value of key %r before rewrite", key)
        return previous_type

    def _apply_ttl(self, key: str, ttl: Optional[int]) -> None:
        if ttl:
            self.set_ttl(key, ttl)
