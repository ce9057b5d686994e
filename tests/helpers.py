"""Shared test values, importable from test modules and conftest."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

# Aligned to a 30s step boundary
NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


@dataclass
class User:
    email: str
