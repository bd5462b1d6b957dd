import fakeredis
import pytest

from typed_kv.application.accessor import TypedAccessor
from typed_kv.domain.errors import KeyNotFoundError, TypeMismatchError
from typed_kv.domain.native_type import NativeType
from typed_kv.infrastructure.redis_store import RedisStoreClient

pytestmark = [pytest.mark.integration]


@pytest.fixture
def redis_client():
    """Provide a fake Redis client for testing."""
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def store(redis_client):
    return RedisStoreClient(redis_client)


@pytest.fixture
def accessor(store):
    return TypedAccessor(store)


def test_store_client_commands(store, redis_client):
    assert store.exists("k") is False
    assert store.type("k") == "none"

    assert store.set("k", "v") is True
    assert store.get("k") == "v"
    assert store.type("k") == "string"

    assert store.hset("h", {"a": "1", "b": "2"}) is True
    assert store.hgetall("h") == {"a": "1", "b": "2"}

    assert store.rpush("l", "a", "b", "c") is True
    assert store.llen("l") == 3
    assert store.lindex("l", 0) == "a"
    assert store.lindex("l", 9) is None

    assert store.sadd("s", "a", "b") is True
    assert store.smembers("s") == {"a", "b"}

    assert store.zadd("z", 2, "b") is True
    assert store.zadd("z", 1, "a") is True
    assert store.zrange("z", 0, -1) == ["a", "b"]

    assert store.expire("k", 100) is True
    assert 0 < redis_client.ttl("k") <= 100
    assert store.expire("missing", 100) is False

    assert store.delete("k") is True
    assert store.delete("k") is False
    assert store.redis is redis_client


def test_empty_collection_writes_skip_the_round_trip(store, redis_client):
    assert store.hset("k", {}) is False
    assert store.rpush("k") is False
    assert store.sadd("k") is False
    assert redis_client.exists("k") == 0


def test_byte_replies_are_decoded():
    store = RedisStoreClient(fakeredis.FakeRedis())
    store.set("k", "välue")
    store.hset("h", {"f": "v"})
    store.rpush("l", "a")
    store.sadd("s", "a")
    store.zadd("z", 1, "a")

    assert store.type("k") == "string"
    assert store.get("k") == "välue"
    assert store.hgetall("h") == {"f": "v"}
    assert store.lindex("l", 0) == "a"
    assert store.smembers("s") == {"a"}
    assert store.zrange("z", 0, -1) == ["a"]


def test_accessor_round_trips_over_redis(accessor):
    accessor.set_string("s", "hello")
    accessor.set_int("i", -7)
    accessor.set_float("f", 2.5)
    accessor.set_boolean("b", False)
    accessor.set_array("l", {0: "a", 1: "b", 2: "c"})
    accessor.set_array("h", {"x": "a", "y": "b"})
    accessor.set_set("st", ["a", "b", "a"])
    accessor.set_sorted_set("z", {3: "c", 1: "a", 2: "b"})

    assert accessor.get_string("s") == "hello"
    assert accessor.get_int("i") == -7
    assert accessor.get_float("f") == 2.5
    assert accessor.get_boolean("b") is False
    assert accessor.get_array("l") == ["a", "b", "c"]
    assert accessor.get_array("h") == {"x": "a", "y": "b"}
    assert accessor.get_set("st") == {"a", "b"}
    assert accessor.get_sorted_set("z") == ["a", "b", "c"]


def test_out_of_order_keys_are_stored_as_hash(accessor, redis_client):
    accessor.set_array("k", {1: "a", 0: "b"})
    assert redis_client.type("k") == "hash"
    assert accessor.get_type("k") is NativeType.HASH


def test_rewrite_replaces_native_type(accessor):
    accessor.set_string("k", "x")
    accessor.set_list("k", ["a"])

    assert accessor.get_type("k") is NativeType.LIST
    with pytest.raises(TypeMismatchError):
        accessor.get_string("k")


def test_ttl_is_forwarded_to_redis(accessor, redis_client):
    accessor.set_hash("h", {"a": "1"}, ttl=60)
    accessor.set_string("s", "v", ttl=0)

    assert 0 < redis_client.ttl("h") <= 60
    assert redis_client.ttl("s") == -1


def test_missing_key_and_stream_type(accessor, redis_client):
    with pytest.raises(KeyNotFoundError):
        accessor.get("missing")
    with pytest.raises(KeyNotFoundError):
        accessor.set_ttl("missing", 10)

    redis_client.xadd("events", {"field": "value"})
    assert accessor.get_type("events") is NativeType.STREAM
    with pytest.raises(TypeMismatchError):
        accessor.get("events")
