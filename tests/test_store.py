from __future__ import annotations

import logging

import pytest

from pyimbridge._cache import LruCache
from pyimbridge.config import BridgeConfig
from pyimbridge.models import UserState
from pyimbridge.store import CallbackLog, UserStore


def test_lru_cache_evicts_least_recently_used() -> None:
    cache: LruCache[str, int] = LruCache(2)
    assert cache.set("a", 1) is None
    assert cache.set("b", 2) is None
    assert cache.get("a") == 1

    assert cache.set("c", 3) == "b"
    assert list(cache) == ["a", "c"]
    assert "b" not in cache
    assert cache.capacity == 2


def test_lru_cache_add_only_inserts_new_keys() -> None:
    cache: LruCache[str, int] = LruCache(3)
    assert cache.add("m1", 1)
    assert not cache.add("m1", 2)
    assert cache.get("m1") == 1
    assert cache.pop("m1") == 1
    assert cache.pop("m1") is None
    assert len(cache) == 0


@pytest.mark.parametrize("capacity", [0, -1])
def test_lru_cache_requires_positive_capacity(capacity: int) -> None:
    with pytest.raises(ValueError):
        LruCache(capacity)


def test_user_store_merges_updates() -> None:
    store = UserStore()
    first = store.save("ext-1", UserState.PENDING_AUTH, user_name="Alice")
    second = store.save("ext-1", UserState.AUTHORIZED, access_token="secret-token")

    assert second.user_name == "Alice"
    assert second.access_token == "secret-token"
    assert second.state is UserState.AUTHORIZED
    assert second.created_at == first.created_at
    assert second.updated_at >= first.updated_at
    assert store.get("ext-1") == second
    assert len(store) == 1


def test_user_store_safe_view_hides_token() -> None:
    store = UserStore()
    store.save("ext-1", UserState.AUTHORIZED, access_token="secret-token", main_document_id="doc-1")
    store.save("ext-2", UserState.NEW)

    views = store.all_safe()

    assert [view["external_userid"] for view in views] == ["ext-1", "ext-2"]
    assert all("access_token" not in view for view in views)
    assert views[0]["has_token"] is True
    assert views[0]["main_document_id"] == "doc-1"
    assert views[0]["state"] == "authorized"
    assert views[1]["has_token"] is False


def test_user_store_is_bounded(caplog: pytest.LogCaptureFixture) -> None:
    store = UserStore(capacity=2)
    store.save("ext-1", UserState.NEW)
    store.save("ext-2", UserState.NEW)
    store.get("ext-1")

    with caplog.at_level(logging.INFO, logger="pyimbridge.store"):
        store.save("ext-3", UserState.NEW)

    assert store.get("ext-2") is None
    assert store.get("ext-1") is not None
    assert len(store) == 2
    assert "evicted ext-2" in caplog.text


def test_user_store_delete_and_validation() -> None:
    store = UserStore()
    store.save("ext-1", UserState.NEW)
    assert store.delete("ext-1")
    assert not store.delete("ext-1")
    with pytest.raises(ValueError):
        store.save("", UserState.NEW)


def test_callback_log_keeps_newest_first() -> None:
    log = CallbackLog(capacity=2)
    for index in range(3):
        log.record("wecom", "POST", {"nonce": str(index), "msg_signature": "sig"})

    entries = log.recent()
    assert [entry["params"]["nonce"] for entry in entries] == ["2", "1"]
    assert entries[0]["params"]["msg_signature"] == "<redacted>"
    assert len(log) == 2


def test_callback_log_redacts_extra_fields() -> None:
    log = CallbackLog()
    log.record("feishu", "POST", {}, encrypt="CIPHER", body_length=12)
    [entry] = log.recent()
    assert entry["encrypt"] == "<redacted>"
    assert entry["body_length"] == 12


def test_callback_log_requires_positive_capacity() -> None:
    with pytest.raises(ValueError):
        CallbackLog(capacity=0)


def test_stores_from_config() -> None:
    config = BridgeConfig(recent_callback_capacity=3, user_store_capacity=2)

    store = UserStore.from_config(config)
    log = CallbackLog.from_config(config)

    assert store.capacity == 2
    assert log.capacity == 3
    for index in range(4):
        store.save(f"ext-{index}", UserState.NEW)
        log.record("wecom", "GET", {"nonce": str(index)})
    assert len(store) == 2
    assert len(log) == 3
