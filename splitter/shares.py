"""
shares.py - Share Ledger

The ShareLedger owns the payee set, the share weights and the per-asset
release counters. It is the only object that mutates this state; the
distribution engine reads it and reports executed payouts back through
record_release().

State:
    payees:          account -> Payee, in insertion order
    total_shares:    sum of all current payees' shares
    released:        asset -> {account -> cumulative amount released}
    total_released:  asset -> cumulative amount released

Counters of removed payees are never deleted. They keep the per-asset sum
of released amounts equal to total_released across the full payee history.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import copy

from .core import (
    Payee, ReleasedMap,
    DuplicatePayee, UnknownPayee, InvalidShares,
    _is_int,
)


@dataclass(frozen=True)
class LedgerSnapshot:
    """Opaque copy of ShareLedger state used for rollback."""
    payees: Tuple[Payee, ...]
    total_shares: int
    released: Dict[str, ReleasedMap]
    total_released: Dict[str, int]


class ShareLedger:
    """
    Ordered payee set with per-asset release accounting.

    Thread Safety:
        Not thread-safe on its own. PaymentSplitter serializes access.

    Example:
        shares = ShareLedger()
        shares.add_payee("alice", 75)
        shares.add_payee("bob", 25)
        shares.record_release("native", "alice", 75)
        shares.total_released("native")   # 75
    """

    def __init__(self):
        self._payees: Dict[str, Payee] = {}
        self._total_shares: int = 0
        self._released: Dict[str, ReleasedMap] = {}
        self._total_released: Dict[str, int] = {}

    # ========================================================================
    # QUERIES (read-only)
    # ========================================================================

    @property
    def total_shares(self) -> int:
        """Sum of the shares of all current payees."""
        return self._total_shares

    @property
    def payee_count(self) -> int:
        return len(self._payees)

    def payees(self) -> Tuple[Payee, ...]:
        """Current payees in insertion order."""
        return tuple(self._payees.values())

    def accounts(self) -> List[str]:
        return list(self._payees)

    def payee(self, index: int) -> Payee:
        """
        Return the payee at `index` in insertion order.

        Raises:
            IndexError: If index is out of range
        """
        if index < 0 or index >= len(self._payees):
            raise IndexError(f"payee index {index} out of range (count={len(self._payees)})")
        return self.payees()[index]

    def is_payee(self, account: str) -> bool:
        return account in self._payees

    def shares(self, account: str) -> int:
        """Share count of `account` (0 if it is not a current payee)."""
        entry = self._payees.get(account)
        return entry.shares if entry else 0

    def released(self, asset: str, account: str) -> int:
        """Cumulative amount of `asset` released to `account`, including while it was a former payee."""
        return self._released.get(asset, {}).get(account, 0)

    def total_released(self, asset: str) -> int:
        """Cumulative amount of `asset` released through this ledger."""
        return self._total_released.get(asset, 0)

    def released_map(self, asset: str) -> ReleasedMap:
        """Copy of every account's cumulative release for `asset`."""
        return dict(self._released.get(asset, {}))

    def assets(self) -> List[str]:
        """Assets with any release history, in first-release order."""
        return list(self._total_released)

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def add_payee(self, account: str, shares: int) -> Payee:
        """
        Append a payee.

        Args:
            account: Account identifier
            shares: Positive share count

        Returns:
            The new Payee entry

        Raises:
            InvalidShares: If shares is not a positive int
            DuplicatePayee: If account is already a payee
        """
        if not _is_int(shares) or shares <= 0:
            raise InvalidShares(f"shares must be a positive int, got {shares!r}")
        if account in self._payees:
            raise DuplicatePayee(f"account {account} is already a payee")
        entry = Payee(account, shares)
        self._payees[account] = entry
        self._total_shares += shares
        return entry

    def remove_payee(self, account: str) -> Payee:
        """
        Delete a payee and its share weight. Release counters are kept.

        Raises:
            UnknownPayee: If account is not a payee
        """
        entry = self._payees.pop(account, None)
        if entry is None:
            raise UnknownPayee(f"account {account} has no shares")
        self._total_shares -= entry.shares
        return entry

    def record_release(self, asset: str, account: str, amount: int) -> None:
        """Add `amount` to the payee's and the aggregate release counters of `asset`."""
        if amount <= 0:
            raise ValueError(f"release amount must be positive, got {amount}")
        per_asset = self._released.setdefault(asset, {})
        per_asset[account] = per_asset.get(account, 0) + amount
        self._total_released[asset] = self._total_released.get(asset, 0) + amount

    # ========================================================================
    # ROLLBACK
    # ========================================================================

    def snapshot(self) -> LedgerSnapshot:
        """Capture the complete ledger state."""
        return LedgerSnapshot(
            payees=self.payees(),
            total_shares=self._total_shares,
            released=copy.deepcopy(self._released),
            total_released=dict(self._total_released),
        )

    def restore(self, snapshot: LedgerSnapshot) -> None:
        """Replace the ledger state with a previously captured snapshot."""
        self._payees = {p.account: p for p in snapshot.payees}
        self._total_shares = snapshot.total_shares
        self._released = copy.deepcopy(snapshot.released)
        self._total_released = dict(snapshot.total_released)

    # ========================================================================
    # VERIFICATION
    # ========================================================================

    def verify_conservation(self, assets: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Verify the ledger's accounting invariants.

        Checks that total_shares equals the sum of payee shares and that,
        for every asset, the released amounts of all payees ever paid sum
        to total_released.

        Args:
            assets: Assets to check (default: every asset with release history)

        Returns:
            Dict with keys:
            - 'valid': bool - True if every invariant holds
            - 'total_shares': int - Current total shares
            - 'released': Dict[str, int] - total_released per checked asset
            - 'discrepancies': List[Dict] - Details of each violation

        Example:
            result = shares.verify_conservation()
            assert result['valid'], result['discrepancies']
        """
        discrepancies = []

        share_sum = sum(p.shares for p in self._payees.values())
        if share_sum != self._total_shares:
            discrepancies.append({
                'check': 'total_shares',
                'expected': share_sum,
                'actual': self._total_shares,
            })

        released = {}
        for asset in (assets if assets is not None else self.assets()):
            total = self.total_released(asset)
            released[asset] = total
            per_payee = sum(self._released.get(asset, {}).values())
            if per_payee != total:
                discrepancies.append({
                    'check': 'released',
                    'asset': asset,
                    'expected': per_payee,
                    'actual': total,
                })

        return {
            'valid': len(discrepancies) == 0,
            'total_shares': self._total_shares,
            'released': released,
            'discrepancies': discrepancies,
        }

    def __repr__(self) -> str:
        return f"ShareLedger({self.payee_count} payees, {self._total_shares} shares)"
