"""Tests for the in-memory tunnel registry."""

import pytest

from ssh_tunnels.exceptions import DuplicateIdError, TunnelNotFoundError
from ssh_tunnels.tunnels.registry import TunnelRegistry


class TestTunnelRegistry:
    """Test suite for TunnelRegistry component."""

    def test_registry_starts_empty(self):
        registry = TunnelRegistry()

        assert len(registry) == 0
        assert registry.list_tunnels() == []

    def test_add_then_list_contains_exactly_added(self, make_tunnel):
        """Test listing returns every added tunnel keyed by its ID"""
        registry = TunnelRegistry()
        tunnels = [make_tunnel(i) for i in (3, 1, 2)]

        for tunnel in tunnels:
            registry.add_tunnel(tunnel)

        assert dict(registry.iter_tunnels()) == {t.id: t for t in tunnels}

    def test_add_duplicate_id_leaves_existing_entry(self, make_tunnel):
        """Test duplicate ID is rejected and the original entry is kept"""
        registry = TunnelRegistry()
        original = make_tunnel(1, name="original")
        registry.add_tunnel(original)

        with pytest.raises(DuplicateIdError, match="already exists") as exc_info:
            registry.add_tunnel(make_tunnel(1, name="impostor"))

        assert exc_info.value.tunnel_id == 1
        assert registry.get_tunnel(1) is original
        assert len(registry) == 1

    def test_remove_tunnel(self, make_tunnel):
        registry = TunnelRegistry()
        registry.add_tunnel(make_tunnel(1))
        registry.add_tunnel(make_tunnel(2))

        removed = registry.remove_tunnel(1)

        assert removed.id == 1
        assert 1 not in registry
        assert 2 in registry

    def test_remove_missing_tunnel_raises(self):
        registry = TunnelRegistry()

        with pytest.raises(TunnelNotFoundError, match="not found"):
            registry.remove_tunnel(42)

    def test_get_missing_tunnel_returns_none(self):
        assert TunnelRegistry().get_tunnel(5) is None

    def test_iter_tunnels_is_lazy(self, make_tunnel):
        registry = TunnelRegistry()
        registry.add_tunnel(make_tunnel(1))

        pairs = registry.iter_tunnels()

        assert next(pairs)[0] == 1
        with pytest.raises(StopIteration):
            next(pairs)

    def test_list_tunnels_filters_auto_connect(self, make_tunnel):
        registry = TunnelRegistry()
        registry.add_tunnel(make_tunnel(1, auto_connect=True))
        registry.add_tunnel(make_tunnel(2))

        assert [t.id for t in registry.list_tunnels(auto_connect=True)] == [1]
        assert [t.id for t in registry.list_tunnels(auto_connect=False)] == [2]

    def test_search_by_name_and_hostname(self, make_tunnel):
        """Test search returns every match on name or hostname, and nothing else"""
        registry = TunnelRegistry()
        registry.add_tunnel(make_tunnel(1, name="db-primary", hostname="10.0.0.5"))
        registry.add_tunnel(make_tunnel(2, name="web", hostname="db.internal"))
        registry.add_tunnel(make_tunnel(3, name="cache", hostname="10.0.0.9"))

        assert {t.id for t in registry.search("db")} == {1, 2}
        assert {t.id for t in registry.search("10.0.0")} == {1, 3}
        assert registry.search("DB") == []

    def test_search_no_matches_returns_empty(self, make_tunnel):
        registry = TunnelRegistry()
        registry.add_tunnel(make_tunnel(1))

        assert registry.search("nothing-like-this") == []

    def test_merged_with_overwrites_same_id(self, make_tunnel):
        """Test merging replaces entries with the same ID and keeps others"""
        registry = TunnelRegistry()
        registry.add_tunnel(make_tunnel(1, name="old"))
        registry.add_tunnel(make_tunnel(2))

        merged = registry.merged_with({1: make_tunnel(1, name="new"), 9: make_tunnel(9)})

        assert merged.get_tunnel(1).name == "new"
        assert set(merged.tunnels) == {1, 2, 9}
        assert registry.get_tunnel(1).name == "old"
