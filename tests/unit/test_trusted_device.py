"""
Unit tests for TrustedDeviceValidator.

Tests verify the cache is a read-through accelerator:
- Cache hits grant trust with no account lookup
- Misses fall back to the account's trusted device and backfill
- Device promotion removes the old entry and writes the new one
"""

from unittest.mock import Mock

from src.adapters.cache import InMemoryTrustCache
from src.domain.models import Account, RequestContext
from src.domain.ports import trusted_device_key
from src.domain.trusted_device import TrustedDeviceValidator


def make_account(device: str = "laptop") -> Account:
    return Account(username="alice", email="alice@example.com", trusted_device_id=device)


class TestValidate:
    """Tests for validate()."""

    def test_cache_hit_skips_account_lookup(self) -> None:
        store = Mock()
        cache = InMemoryTrustCache()
        cache.set(trusted_device_key("alice", "laptop"), "laptop")

        validator = TrustedDeviceValidator(store=store, cache=cache)

        assert validator.validate("alice", "laptop") is True
        store.find_by_username.assert_not_called()

    def test_miss_with_matching_device_backfills(self) -> None:
        store = Mock()
        store.find_by_username.return_value = make_account("laptop")
        cache = InMemoryTrustCache()

        validator = TrustedDeviceValidator(store=store, cache=cache)

        assert validator.validate("alice", "laptop") is True
        assert cache.get(trusted_device_key("alice", "laptop")) == "laptop"

    def test_backfill_skipped_when_entry_exists(self) -> None:
        store = Mock()
        store.find_by_username.return_value = make_account("laptop")
        cache = Mock()
        cache.get.return_value = None
        cache.exists.return_value = True

        validator = TrustedDeviceValidator(store=store, cache=cache)

        assert validator.validate("alice", "laptop") is True
        cache.set.assert_not_called()

    def test_miss_with_other_device_is_untrusted(self) -> None:
        store = Mock()
        store.find_by_username.return_value = make_account("laptop")
        cache = InMemoryTrustCache()

        validator = TrustedDeviceValidator(store=store, cache=cache)

        assert validator.validate("alice", "phone") is False
        assert not cache.exists(trusted_device_key("alice", "phone"))

    def test_unknown_account_is_untrusted(self) -> None:
        store = Mock()
        store.find_by_username.return_value = None

        validator = TrustedDeviceValidator(store=store, cache=InMemoryTrustCache())

        assert validator.validate("ghost", "laptop") is False

    def test_empty_device_id_is_never_trusted(self) -> None:
        store = Mock()
        store.find_by_username.return_value = make_account("")

        validator = TrustedDeviceValidator(store=store, cache=InMemoryTrustCache())

        assert validator.validate("alice", "") is False


class TestUpdateDevice:
    """Tests for update_device()."""

    def test_replaces_cache_entry_and_account_device(self) -> None:
        store = Mock()
        store.find_by_username.return_value = make_account("laptop")
        cache = InMemoryTrustCache()
        cache.set(trusted_device_key("alice", "laptop"), "laptop")

        validator = TrustedDeviceValidator(store=store, cache=cache)
        validator.update_device("alice", RequestContext(device_id="phone"))

        assert not cache.exists(trusted_device_key("alice", "laptop"))
        assert cache.get(trusted_device_key("alice", "phone")) == "phone"
        updated = store.update.call_args[0][0]
        assert updated.trusted_device_id == "phone"
        assert updated.modified_by == "alice"
        assert updated.modified_date is not None

    def test_old_entry_removed_before_new_written(self) -> None:
        store = Mock()
        store.find_by_username.return_value = make_account("laptop")
        cache = Mock()

        validator = TrustedDeviceValidator(store=store, cache=cache)
        validator.update_device("alice", RequestContext(device_id="phone"))

        assert [c[0] for c in cache.mock_calls] == ["remove", "set"]
        cache.remove.assert_called_once_with(trusted_device_key("alice", "laptop"))

    def test_promoted_device_validates_from_cache(self) -> None:
        store = Mock()
        store.find_by_username.return_value = make_account("laptop")
        cache = InMemoryTrustCache()

        validator = TrustedDeviceValidator(store=store, cache=cache)
        validator.update_device("alice", RequestContext(device_id="phone"))
        store.find_by_username.reset_mock()

        assert validator.validate("alice", "phone") is True
        store.find_by_username.assert_not_called()

    def test_missing_account_writes_nothing(self) -> None:
        store = Mock()
        store.find_by_username.return_value = None
        cache = Mock()

        validator = TrustedDeviceValidator(store=store, cache=cache)
        validator.update_device("ghost", RequestContext(device_id="phone"))

        cache.set.assert_not_called()
        store.update.assert_not_called()
