"""Start ordering for ``depends_on`` graphs."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping


class CycleError(ValueError):
    """A set of services depend on each other in a loop.

    ``cycle`` holds the services along one loop, first service repeated at
    the end, e.g. ``["api", "worker", "api"]``.
    """

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__(f"Dependency cycle between services: {' -> '.join(cycle)}")


def _trace_cycle(blocked: set[str], depends_on: Mapping[str, Iterable[str]]) -> list[str]:
    # Every blocked service has a blocked dependency, so walking any of them
    # must revisit a service.
    current = min(blocked)
    seen: list[str] = []
    while current not in seen:
        seen.append(current)
        current = min(d for d in depends_on[current] if d in blocked)
    return seen[seen.index(current) :] + [current]


def topological_tiers(
    services: Iterable[str],
    depends_on: Mapping[str, Iterable[str]],
) -> list[list[str]]:
    """Group *services* into start tiers.

    *depends_on* maps a service to the services it needs; services missing
    from it need nothing. Every dependency of a service sits in an earlier
    tier, so each tier can be started together. Tiers are sorted.

    Raises:
        CycleError: If some services can never start, naming one loop.
    """
    waiting_on: dict[str, int] = {name: 0 for name in services}
    needed_by: dict[str, list[str]] = defaultdict(list)
    for name, deps in depends_on.items():
        for dep in deps:
            waiting_on[name] += 1
            needed_by[dep].append(name)

    tiers: list[list[str]] = []
    tier = sorted(name for name, count in waiting_on.items() if count == 0)
    while tier:
        tiers.append(tier)
        ready: list[str] = []
        for name in tier:
            for dependent in needed_by[name]:
                waiting_on[dependent] -= 1
                if waiting_on[dependent] == 0:
                    ready.append(dependent)
        tier = sorted(ready)

    blocked = {name for name, count in waiting_on.items() if count > 0}
    if blocked:
        raise CycleError(_trace_cycle(blocked, depends_on))
    return tiers
