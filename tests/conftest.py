"""Shared fixtures for the evtwire test suite."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from pydantic import BaseModel

from evtwire.core.definition import EventDefinition
from evtwire.core.registry import DefinitionRegistry


class Quote(BaseModel):
    symbol: str
    bid: float
    ask: float
    size: int | None = None
    venues: list[str] = []


@pytest.fixture
def registry() -> DefinitionRegistry:
    """A fresh registry so tests never collide on tags."""
    return DefinitionRegistry(name="test")


@pytest.fixture
def evts(registry: DefinitionRegistry) -> SimpleNamespace:
    """The classic set of sample events, one per payload kind."""
    return SimpleNamespace(
        StrEvt=EventDefinition(-1, str, name="StrEvt", registry=registry),
        IntEvt=EventDefinition(-2, int, name="IntEvt", registry=registry),
        ArrEvt=EventDefinition(-3, list[str], name="ArrEvt", registry=registry),
        LstEvt=EventDefinition(-4, list[str], name="LstEvt", registry=registry),
        MulEvt=EventDefinition(
            -5, tuple[int, str, float], "id, name, value", name="MulEvt", registry=registry
        ),
        EmpEvt=EventDefinition(-11, None, name="EmpEvt", registry=registry),
        QuoteEvt=EventDefinition(-20, Quote, "top of book", name="QuoteEvt", registry=registry),
    )


@pytest.fixture
def quote() -> Quote:
    return Quote(symbol="BTC/USDT", bid=100.5, ask=101.0, size=3, venues=["binance", "bybit"])
