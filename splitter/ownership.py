"""
ownership.py - Share tables from an enumerable ownership registry

A distribution front-end derives payee weights from who holds the
share-bearing positions: every token held counts as one share. This module
reads any OwnershipRegistry, builds that table, previews what each owner
would receive, and seeds a splitter with it.

    registry -> derive_share_table() -> {owner: shares}
                                     -> preview_payouts(table, balance)
                                     -> seed_payees(splitter, caller, table)
"""

from __future__ import annotations
from typing import Dict, List, Mapping, Optional

from .core import OwnershipRegistry, Payee, ShareTable, _require_account
from .engine import PaymentSplitter


class StaticOwnershipRegistry:
    """
    In-memory enumerable ownership ledger.

    Token ids are assigned sequentially from 0 on mint, and enumeration
    follows mint order.

    Example:
        registry = StaticOwnershipRegistry(["alice", "bob", "alice"])
        registry.total_supply()    # 3
        registry.owner_of(2)       # "alice"
    """

    def __init__(self, owners: Optional[List[str]] = None):
        self._owners: Dict[int, str] = {}
        self._next_token_id = 0
        for owner in owners or []:
            self.mint(owner)

    def mint(self, owner: str) -> int:
        """Mint the next token to `owner` and return its id."""
        _require_account(owner, "owner")
        token_id = self._next_token_id
        self._owners[token_id] = owner
        self._next_token_id += 1
        return token_id

    def transfer(self, token_id: int, new_owner: str) -> None:
        """Reassign an existing token."""
        if token_id not in self._owners:
            raise KeyError(f"token {token_id} does not exist")
        _require_account(new_owner, "new_owner")
        self._owners[token_id] = new_owner

    def total_supply(self) -> int:
        return len(self._owners)

    def token_by_index(self, index: int) -> int:
        if index < 0 or index >= len(self._owners):
            raise IndexError(f"token index {index} out of range")
        return list(self._owners)[index]

    def owner_of(self, token_id: int) -> str:
        if token_id not in self._owners:
            raise KeyError(f"token {token_id} does not exist")
        return self._owners[token_id]

    def __repr__(self) -> str:
        return f"StaticOwnershipRegistry({len(self._owners)} tokens)"


def derive_share_table(registry: OwnershipRegistry) -> ShareTable:
    """
    Count tokens per owner.

    Owners appear in the order their first token is enumerated, which is the
    order payees should be added in.

    Args:
        registry: Any enumerable ownership registry

    Returns:
        Dict mapping owner -> number of tokens held
    """
    table: ShareTable = {}
    for index in range(registry.total_supply()):
        owner = registry.owner_of(registry.token_by_index(index))
        table[owner] = table.get(owner, 0) + 1
    return table


def preview_payouts(table: Mapping[str, int], balance: int) -> Dict[str, int]:
    """
    What each owner would receive if `balance` were split by `table` now.

    Rounds down per owner; the remainder is not assigned.

    Args:
        table: owner -> shares
        balance: Amount to split

    Returns:
        owner -> floor(balance * shares / total_shares); empty if table is empty
    """
    total = sum(table.values())
    if total == 0:
        return {}
    return {owner: balance * shares // total for owner, shares in table.items()}


def seed_payees(splitter: PaymentSplitter, caller: str, table: Mapping[str, int]) -> List[Payee]:
    """
    Add every owner in `table` as a payee.

    Owners that are already payees are skipped, so a splitter can be
    re-seeded after new mints without failing on existing entries.

    Args:
        splitter: PaymentSplitter to populate
        caller: Account authorized to add payees
        table: owner -> shares, in the desired payee order

    Returns:
        Payees added by this call
    """
    added = []
    for owner, shares in table.items():
        if splitter.is_payee(owner):
            continue
        added.append(splitter.add_payee(caller, owner, shares))
    return added
