"""
Unit tests for RedisTrustCache adapter.

The redis client is mocked; tests verify the adapter's command mapping.
"""

from unittest.mock import Mock

from src.adapters.cache import RedisTrustCache


class TestRedisTrustCache:
    def test_get_returns_client_value(self) -> None:
        client = Mock()
        client.get.return_value = "laptop"

        assert RedisTrustCache(client).get("trusted-device:alicelaptop") == "laptop"
        client.get.assert_called_once_with("trusted-device:alicelaptop")

    def test_set_without_ttl(self) -> None:
        client = Mock()

        RedisTrustCache(client).set("k", "v")

        client.set.assert_called_once_with("k", "v", ex=None)

    def test_set_with_ttl(self) -> None:
        client = Mock()

        RedisTrustCache(client, ttl_seconds=3600).set("k", "v")

        client.set.assert_called_once_with("k", "v", ex=3600)

    def test_remove_deletes_key(self) -> None:
        client = Mock()

        RedisTrustCache(client).remove("k")

        client.delete.assert_called_once_with("k")

    def test_exists_is_boolean(self) -> None:
        client = Mock()
        client.exists.return_value = 1

        assert RedisTrustCache(client).exists("k") is True

        client.exists.return_value = 0
        assert RedisTrustCache(client).exists("k") is False

    def test_from_url_decodes_responses(self) -> None:
        cache = RedisTrustCache.from_url("redis://localhost:6379/0", ttl_seconds=10)

        kwargs = cache._client.connection_pool.connection_kwargs
        assert kwargs["decode_responses"] is True
