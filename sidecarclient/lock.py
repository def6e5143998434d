"""Distributed lock calls against a lock store."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from sidecarclient.errors import ClientError


@dataclass
class LockRequest:
    """Request to acquire a lock on a resource."""

    resource_id: str = ""
    lock_owner: str = ""
    expiry_in_seconds: int = 0


@dataclass
class UnlockRequest:
    """Request to release a lock on a resource."""

    resource_id: str = ""
    lock_owner: str = ""


@dataclass
class LockResponse:
    """Outcome of a lock attempt."""

    success: bool = False


@dataclass
class UnlockResponse:
    """Outcome of an unlock attempt, as code and name."""

    status_code: int = 0
    status: str = ""


class UnlockStatus(enum.IntEnum):
    """Status codes returned when releasing a lock."""

    SUCCESS = 0
    LOCK_DOES_NOT_EXIST = 1
    LOCK_BELONGS_TO_OTHERS = 2
    INTERNAL_ERROR = 3


def _check_lock_args(store_name: str, request: object) -> None:
    if not store_name:
        raise ClientError("store_name is empty")
    if request is None:
        raise ClientError("request is None")


class LockMixin:
    """Lock store calls.

    The host class provides ``self._api`` with ``try_lock_alpha1(request)``
    returning a dict with ``success`` and ``unlock_alpha1(request)`` returning
    a dict with an integer ``status``.
    """

    _api: Any

    def try_lock_alpha1(self, store_name: str, request: LockRequest | None) -> LockResponse:
        """Try to acquire a lock from the named lock store."""
        _check_lock_args(store_name, request)
        try:
            response = self._api.try_lock_alpha1(
                {
                    "resource_id": request.resource_id,
                    "lock_owner": request.lock_owner,
                    "expiry_in_seconds": request.expiry_in_seconds,
                    "store_name": store_name,
                }
            )
        except Exception as exc:
            raise ClientError(f"error getting lock: {exc}") from exc
        return LockResponse(success=bool((response or {}).get("success", False)))

    def unlock_alpha1(
        self, store_name: str, request: UnlockRequest | None
    ) -> UnlockResponse:
        """Release a lock held in the named lock store."""
        _check_lock_args(store_name, request)
        try:
            response = self._api.unlock_alpha1(
                {
                    "resource_id": request.resource_id,
                    "lock_owner": request.lock_owner,
                    "store_name": store_name,
                }
            )
        except Exception as exc:
            raise ClientError(f"error getting lock: {exc}") from exc
        code = int((response or {}).get("status", 0))
        try:
            name = UnlockStatus(code).name
        except ValueError:
            name = ""
        return UnlockResponse(status_code=code, status=name)