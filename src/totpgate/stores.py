"""Persistence ports the gate is built against, plus ready-made adapters.

The gate only ever talks to an ``EnrollmentStore`` (durable, per identity)
and a ``SessionFlag`` (ephemeral, per session). Errors raised by either are
passed through to the caller untouched.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any, Protocol, runtime_checkable

from totpgate.config import GateSettings
from totpgate.crypto import decrypt, encrypt, load_master_key
from totpgate.errors import FlagFailure
from totpgate.models import EnrollmentRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class EnrollmentStore(Protocol):
    async def load(self, identity: str) -> EnrollmentRecord | None: ...

    async def save(self, identity: str, record: EnrollmentRecord) -> None: ...


@runtime_checkable
class SessionFlag(Protocol):
    async def get(self, session: Any) -> bool: ...

    async def set(self, session: Any, value: bool) -> None: ...


class MemoryEnrollmentStore:
    """Dict-backed store for tests and single-process deployments."""

    def __init__(self, records: dict[str, EnrollmentRecord] | None = None) -> None:
        self._records: dict[str, EnrollmentRecord] = dict(records or {})

    async def load(self, identity: str) -> EnrollmentRecord | None:
        record = self._records.get(identity)
        return record.model_copy() if record is not None else None

    async def save(self, identity: str, record: EnrollmentRecord) -> None:
        self._records[identity] = record.model_copy()

    def __contains__(self, identity: str) -> bool:
        return identity in self._records

    def __len__(self) -> int:
        return len(self._records)


class SessionKeyFlag:
    """Keeps the flag under one key of a dict-like session (e.g. Starlette's)."""

    def __init__(self, key: str = "two_factor_verified") -> None:
        self.key = key

    @classmethod
    def from_settings(cls, settings: GateSettings) -> SessionKeyFlag:
        return cls(settings.session_key)

    async def get(self, session: Any) -> bool:
        if not isinstance(session, MutableMapping):
            raise FlagFailure(f"session of type {type(session).__name__} is not a mapping")
        return bool(session.get(self.key, False))

    async def set(self, session: Any, value: bool) -> None:
        if not isinstance(session, MutableMapping):
            raise FlagFailure(f"session of type {type(session).__name__} is not a mapping")
        session[self.key] = bool(value)


class EncryptedEnrollmentStore:
    """Wraps another store and keeps ``record.secret`` encrypted at rest."""

    def __init__(self, inner: EnrollmentStore, key: bytes) -> None:
        self.inner = inner
        self._key = key

    @classmethod
    def from_settings(cls, inner: EnrollmentStore, settings: GateSettings) -> EncryptedEnrollmentStore:
        """Use TOTPGATE_MASTER_KEY as the encryption key."""
        return cls(inner, load_master_key(settings.master_key))

    async def load(self, identity: str) -> EnrollmentRecord | None:
        record = await self.inner.load(identity)
        if record is None or not record.secret:
            return record
        return record.model_copy(update={"secret": decrypt(record.secret, self._key)})

    async def save(self, identity: str, record: EnrollmentRecord) -> None:
        if record.secret:
            record = record.model_copy(update={"secret": encrypt(record.secret, self._key)})
        await self.inner.save(identity, record)
        logger.debug("Saved encrypted enrollment for %s", identity)
