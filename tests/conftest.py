"""Shared test fixtures and helpers."""

from __future__ import annotations

import textwrap
import threading
from collections.abc import Iterable

import pytest

from composectl import CancelToken, ComposeProject, FakeComposeClient, ServiceUpSpec

SAMPLE_COMPOSE = textwrap.dedent("""\
    services:
      web:
        build: ./web
        ports:
          - "8000:8000"
        environment:
          - DEBUG=${DEBUG:-false}
        depends_on:
          - db
          - cache
      db:
        image: postgres:${PG_VERSION:-16}
        volumes:
          - dbdata:/var/lib/postgresql/data
      cache:
        image: redis:7
    networks:
      default:
    volumes:
      dbdata:
""")


def make_spec(service: str = "web", *, build: bool = False, **project_kwargs) -> ServiceUpSpec:
    """Build a ServiceUpSpec for tests."""
    return ServiceUpSpec(
        service=service,
        build=build,
        project=ComposeProject(**project_kwargs),
    )


def collect_in_thread(lines: Iterable[str]) -> tuple[threading.Thread, list[str]]:
    """Drain *lines* on a background thread; returns the thread and the output list."""
    out: list[str] = []
    thread = threading.Thread(target=lambda: out.extend(lines), daemon=True)
    thread.start()
    return thread, out


@pytest.fixture
def client():
    """Provide a FakeComposeClient that is closed after the test."""
    fake = FakeComposeClient(environment={})
    yield fake
    fake.close()


@pytest.fixture
def cancel():
    """Provide a CancelToken that is cancelled after the test."""
    token = CancelToken()
    yield token
    token.cancel()
