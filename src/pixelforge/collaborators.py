"""Protocols for the services the engine depends on but does not own.

Identity, billing, record storage and durable blob storage live outside
this package.  The engine only calls the narrow async surfaces below;
any object with matching methods can be passed in.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class IdentityVerifier(Protocol):
    """Resolve a caller's bearer token to a user id."""

    async def verify(self, token: str) -> str | None:
        """Return the user id for *token*, or ``None`` when it is invalid."""
        ...


@runtime_checkable
class CreditLedger(Protocol):
    """Read and debit a user's credit balance."""

    async def current_balance(self, user_id: str) -> int:
        """Return the user's current credit balance."""
        ...

    async def deduct(self, user_id: str, amount: int) -> None:
        """Remove *amount* credits from the user's balance."""
        ...


@runtime_checkable
class BlobStore(Protocol):
    """Durable binary storage addressed by key."""

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        """Write *data* under *key* and return a durable URL for it.

        Raises:
            StorageError: If the write fails.
        """
        ...


@runtime_checkable
class AssetStore(Protocol):
    """Create-only surface of the asset record store."""

    async def create(self, record: dict[str, Any]) -> dict[str, Any]:
        """Persist an asset record and return it with its assigned id."""
        ...


@runtime_checkable
class ProjectStore(Protocol):
    """Create-only surface of the project store."""

    async def create(self, project: dict[str, Any]) -> dict[str, Any]:
        """Persist a project and return it with its assigned ``id``."""
        ...
