"""Shared fixtures: a fixed clock, in-memory stores and a gate wired to them."""

from __future__ import annotations

import pytest

from totpgate.config import GateSettings
from totpgate.gate import GateKeeper
from totpgate.stores import MemoryEnrollmentStore, SessionKeyFlag

from helpers import NOW


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "TOTPGATE_LABEL",
        "TOTPGATE_SECRET_BYTE_LENGTH",
        "TOTPGATE_ROUTE_PREFIX",
        "TOTPGATE_SUCCESS_REDIRECT",
        "TOTPGATE_FAILURE_REDIRECT",
        "TOTPGATE_IDENTITY_PATH",
        "TOTPGATE_SESSION_KEY",
        "TOTPGATE_MASTER_KEY",
        "TOTPGATE_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store() -> MemoryEnrollmentStore:
    return MemoryEnrollmentStore()


@pytest.fixture
def flag(settings) -> SessionKeyFlag:
    return SessionKeyFlag.from_settings(settings)


@pytest.fixture
def settings() -> GateSettings:
    return GateSettings(_env_file=None, label="Acme", success_redirect="/home")


@pytest.fixture
def gate(store, flag, settings) -> GateKeeper:
    return GateKeeper(store, flag, settings, clock=lambda: NOW)
