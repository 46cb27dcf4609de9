"""Tests for start ordering of service dependencies."""

from __future__ import annotations

import pytest

from composectl._graph import CycleError, topological_tiers


class TestTopologicalTiers:
    def test_independent_services_share_a_tier(self):
        assert topological_tiers({"b", "a"}, {}) == [["a", "b"]]

    def test_chain(self):
        tiers = topological_tiers({"web", "db", "cache"}, {"web": ["db"], "db": ["cache"]})
        assert tiers == [["cache"], ["db"], ["web"]]

    def test_diamond(self):
        tiers = topological_tiers(
            {"web", "api", "worker", "db"},
            {"web": ["api", "worker"], "api": ["db"], "worker": ["db"]},
        )
        assert tiers == [["db"], ["api", "worker"], ["web"]]

    def test_accepts_any_iterable_of_services(self):
        assert topological_tiers(["web", "db"], {"web": ("db",)}) == [["db"], ["web"]]

    def test_empty(self):
        assert topological_tiers(set(), {}) == []


class TestCycles:
    def test_two_service_loop(self):
        with pytest.raises(CycleError, match="a -> b -> a") as exc_info:
            topological_tiers({"a", "b", "c"}, {"a": ["b"], "b": ["a"]})
        assert exc_info.value.cycle == ["a", "b", "a"]

    def test_names_the_loop_not_its_dependents(self):
        # web waits on the loop but is not part of it.
        with pytest.raises(CycleError) as exc_info:
            topological_tiers(
                {"web", "api", "worker", "db"},
                {"web": ["api"], "api": ["worker"], "worker": ["api", "db"]},
            )
        assert exc_info.value.cycle == ["api", "worker", "api"]

    def test_three_service_loop(self):
        with pytest.raises(CycleError) as exc_info:
            topological_tiers({"x", "y", "z"}, {"x": ["y"], "y": ["z"], "z": ["x"]})
        assert exc_info.value.cycle == ["x", "y", "z", "x"]

    def test_is_value_error(self):
        assert issubclass(CycleError, ValueError)
