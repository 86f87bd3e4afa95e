"""Shared pytest fixtures."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from outlinesync.manager import OutlineManager
from outlinesync.settings import OutlineSettings
from outlinesync.timers import VirtualTimers

from tests.helpers import FakeAdapter, FakeMutationSource, items_from


@pytest.fixture
def adapter() -> FakeAdapter:
    return FakeAdapter(items=items_from((1, "A"), (2, "B"), (2, "C"), (1, "D")))


@pytest.fixture
def timers() -> VirtualTimers:
    return VirtualTimers()


@pytest.fixture
def mutations() -> FakeMutationSource:
    return FakeMutationSource()


@pytest.fixture
def make_manager(
    adapter: FakeAdapter,
    timers: VirtualTimers,
    mutations: FakeMutationSource,
) -> Callable[..., OutlineManager]:
    def _factory(**overrides: Any) -> OutlineManager:
        settings = overrides.pop("settings", None) or OutlineSettings(show_user_queries=False)
        return OutlineManager(
            overrides.pop("adapter", adapter),
            settings,
            timers=overrides.pop("timers", timers),
            mutation_source=overrides.pop("mutation_source", mutations),
            **overrides,
        )

    return _factory


@pytest.fixture
def manager(make_manager: Callable[..., OutlineManager]) -> OutlineManager:
    outline = make_manager()
    outline.refresh()
    return outline
