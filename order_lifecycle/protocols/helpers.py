"""Helpers shared by the protocol adapters.

Account-list parsing, named-account and signer lookup, and the known-variant
probe that separates foreign records from malformed known ones.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from order_lifecycle.core.domain.errors import ProtocolError
from order_lifecycle.core.domain.pubkey import is_valid_pubkey, value_to_pubkey
from order_lifecycle.core.domain.types import AccountInfo

__all__ = [
    "account_at",
    "contains_known_variant",
    "find_account_by_name",
    "find_signer",
    "is_valid_pubkey",
    "parse_accounts",
    "unwrap_named",
    "value_to_pubkey",
]


def parse_accounts(accounts_json: Any) -> list[AccountInfo]:
    """Parse an instruction's accounts array.

    Each item needs a string ``pubkey``. ``is_signer``/``is_writable`` default
    to False and ``name`` to None when absent or not of the expected type.
    """
    if not isinstance(accounts_json, list):
        raise ProtocolError("accounts is not an array")

    result: list[AccountInfo] = []
    for item in accounts_json:
        if not isinstance(item, dict):
            raise ProtocolError("account missing pubkey")
        pubkey = item.get("pubkey")
        if not isinstance(pubkey, str):
            raise ProtocolError("account missing pubkey")

        is_signer = item.get("is_signer")
        is_writable = item.get("is_writable")
        name = item.get("name")
        result.append(
            AccountInfo(
                pubkey=pubkey,
                is_signer=is_signer if isinstance(is_signer, bool) else False,
                is_writable=is_writable if isinstance(is_writable, bool) else False,
                name=name if isinstance(name, str) else None,
            )
        )
    return result


def find_signer(accounts: Iterable[AccountInfo]) -> str | None:
    """Return the pubkey of the first signer account."""
    for account in accounts:
        if account.is_signer:
            return account.pubkey
    return None


def find_account_by_name(accounts: Iterable[AccountInfo], name: str) -> AccountInfo | None:
    """Return the first account carrying ``name``."""
    for account in accounts:
        if account.name == name:
            return account
    return None


def account_at(accounts: Sequence[AccountInfo], index: int, what: str) -> str:
    """Return the pubkey at a positional index or raise ProtocolError."""
    if 0 <= index < len(accounts):
        return accounts[index].pubkey
    raise ProtocolError(f"{what} index {index} out of bounds")


def contains_known_variant(value: Any, names: Iterable[str]) -> bool:
    """Return True if the top-level JSON object has a key among ``names``."""
    if not isinstance(value, dict):
        return False
    return any(name in value for name in names)


def unwrap_named(value: Any) -> Any:
    """Unwrap a decoder's named wrapper: ``{"Name": {...}}`` -> ``{...}``.

    Values that are not single-key objects are returned unchanged.
    """
    if isinstance(value, dict) and len(value) == 1:
        return next(iter(value.values()))
    return value
