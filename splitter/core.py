"""
Core types and protocols for the payment splitter.

This module provides the foundational data structures shared by every part of
the splitter:
1. Protocols: AssetAccount, AccessGate, OwnershipRegistry (external collaborators)
2. Immutable records: Payee, Payout, ReleaseResult
3. Exceptions: SplitterError and the domain-specific error kinds
4. Enums: Action, AccessPosture, ExecuteResult
5. Constants: asset identifiers and role names

Amounts are ints in the smallest denomination of their asset. Shares are
positive ints. Nothing in this module holds mutable ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import (
    ContextManager, Dict, List, Mapping, Any, Protocol, Tuple, runtime_checkable
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Identifier of the account's native currency. Token assets use any other
# identifier (typically the token's contract address).
NATIVE_ASSET = "native"

# Reserved custody wallet used as the source of deposits.
# The system wallet is exempt from balance validation.
SYSTEM_WALLET = "system"

# Role names understood by RoleGate.
DEFAULT_ADMIN_ROLE = "DEFAULT_ADMIN_ROLE"
ADMIN_ROLE = "ADMIN_ROLE"


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from payee account to its share count, in payee order.
ShareTable = Dict[str, int]

# Mapping from account to cumulative amount released for one asset.
ReleasedMap = Dict[str, int]

# Free-form authorization context (asset, payee, account, ...).
AccessContext = Mapping[str, Any]


# ============================================================================
# ENUMS
# ============================================================================

class Action(Enum):
    """
    State-changing entry points that pass through the AccessGate.

    RELEASE covers every all-payee release mode (full, fractional, explicit).
    RELEASE_TO_PAYEE is the single-payee pull, which the relaxed postures open
    beyond the admin role.
    """
    ADD_PAYEE = "add_payee"
    REMOVE_PAYEE = "remove_payee"
    RELEASE = "release"
    RELEASE_TO_PAYEE = "release_to_payee"


class AccessPosture(Enum):
    """
    Authorization posture of a RoleGate.

    ADMIN_ONLY: every action requires ADMIN_ROLE.
    PAYEE_PULL: RELEASE_TO_PAYEE may be triggered by anyone; add/remove and
                all-payee releases stay admin-gated.
    SELF_PULL:  RELEASE_TO_PAYEE may be triggered by the payee itself or an
                admin; a third party pulling for a payee is rejected.
    """
    ADMIN_ONLY = "admin_only"
    PAYEE_PULL = "payee_pull"
    SELF_PULL = "self_pull"


class ExecuteResult(Enum):
    """
    Outcome of a custody move.

    APPLIED: Move was validated and applied.
    REJECTED: Move failed validation (unregistered wallet or asset,
              insufficient funds, recipient refused the asset).
    """
    APPLIED = "applied"
    REJECTED = "rejected"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class SplitterError(Exception):
    """Base exception for all splitter errors."""
    pass


class NotAuthorized(SplitterError):
    """Raised when the caller lacks the permission required for an action."""
    pass


class DuplicatePayee(SplitterError):
    """Raised when adding an account that is already an active payee."""
    pass


class UnknownPayee(SplitterError):
    """Raised when an operation names an account that is not a current payee."""
    pass


class InvalidShares(SplitterError):
    """Raised when a payee is added with a zero, negative or non-integer share count."""
    pass


class InvalidFraction(SplitterError):
    """Raised when a fractional release has a zero denominator or a fraction outside [0, 1]."""
    pass


class InsufficientBalance(SplitterError):
    """Raised when an explicit release amount exceeds the current holdings."""
    pass


class TransferFailed(SplitterError):
    """Raised when the asset account rejects or reverts a transfer."""
    pass


class NoShares(SplitterError):
    """Raised when a release is attempted while total shares is zero."""
    pass


class CustodyError(SplitterError):
    """Base exception for custody vault errors."""
    pass


class WalletNotRegistered(CustodyError):
    """Raised when a vault operation names a wallet that has not been registered."""
    pass


class AssetNotRegistered(CustodyError):
    """Raised when a vault operation names an asset that has not been registered."""
    pass


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class AssetAccount(Protocol):
    """
    Custody interface of the account whose balances are distributed.

    The splitter reads balances and pays out exclusively through this
    protocol. VaultAccount is the in-memory implementation; a chain-backed
    implementation would wrap native transfers and token contracts.
    """

    def balance_of(self, asset: str, account: str) -> int:
        """Return the amount of `asset` held by `account` (0 if none)."""
        ...

    def transfer(self, asset: str, to: str, amount: int) -> bool:
        """
        Pay `amount` of `asset` from the distributing account to `to`.

        Returns False if the transfer was rejected. A rejected transfer has
        no effect.
        """
        ...

    def assets(self) -> List[str]:
        """Every asset the distributing account can hold, in a stable order."""
        ...

    def atomic(self) -> ContextManager[None]:
        """
        Context manager grouping transfers into one all-or-nothing unit.

        Transfers performed inside the block are reverted if it raises.
        """
        ...


@runtime_checkable
class AccessGate(Protocol):
    """Authorization predicate consumed by every state-changing entry point."""

    def is_authorized(self, caller: str, action: Action, context: AccessContext) -> bool:
        """Return True if `caller` may perform `action` in `context`."""
        ...


@runtime_checkable
class OwnershipRegistry(Protocol):
    """
    Enumerable ownership of share-weighted positions.

    Only used to derive share tables before seeding payees; the splitter
    itself never reads it.
    """

    def total_supply(self) -> int:
        ...

    def token_by_index(self, index: int) -> int:
        ...

    def owner_of(self, token_id: int) -> str:
        ...


# ============================================================================
# IMMUTABLE RECORDS
# ============================================================================

def _require_account(account: str, label: str = "account") -> None:
    if not isinstance(account, str) or not account.strip():
        raise ValueError(f"{label} cannot be empty")


def _is_int(value: Any) -> bool:
    # bool is an int subclass but never a valid amount or share count
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True, slots=True)
class Payee:
    """
    A beneficiary and its share weight.

    Attributes:
        account: Account identifier receiving payouts.
        shares: Positive integer weight. Fixed for the lifetime of the entry.
    """
    account: str
    shares: int

    def __post_init__(self):
        _require_account(self.account)
        if not _is_int(self.shares):
            raise InvalidShares(f"shares must be an int, got {type(self.shares).__name__}")
        if self.shares <= 0:
            raise InvalidShares(f"shares must be positive, got {self.shares}")

    def __repr__(self) -> str:
        return f"Payee({self.account}: {self.shares})"


@dataclass(frozen=True, slots=True)
class Payout:
    """
    A single planned or executed transfer to a payee.

    Attributes:
        asset: Asset identifier (NATIVE_ASSET or a token id).
        account: Receiving payee.
        amount: Strictly positive amount in the asset's smallest unit.
        action: Entry point that produced the payout.
        sequence_number: Position in the splitter's payout log (-1 while only planned).
    """
    asset: str
    account: str
    amount: int
    action: Action = Action.RELEASE
    sequence_number: int = -1

    def __post_init__(self):
        _require_account(self.asset, "asset")
        _require_account(self.account)
        if not _is_int(self.amount):
            raise ValueError(f"Payout amount must be int, got {type(self.amount).__name__}")
        if self.amount <= 0:
            raise ValueError(f"Payout amount must be positive, got {self.amount}")

    def __repr__(self) -> str:
        return f"Payout({self.amount} {self.asset} → {self.account})"


@dataclass(frozen=True, slots=True)
class ReleaseResult:
    """
    Outcome of one release call.

    An empty `payouts` tuple is a successful call with nothing owed.

    Attributes:
        asset: Asset that was distributed.
        distributable: Amount treated as available for this call.
        payouts: Executed payouts, in payee order.
    """
    asset: str
    distributable: int
    payouts: Tuple[Payout, ...] = ()

    @property
    def total(self) -> int:
        """Sum of all payouts in this call."""
        return sum(p.amount for p in self.payouts)

    def amount_for(self, account: str) -> int:
        """Amount paid to `account` in this call (0 if none)."""
        return sum(p.amount for p in self.payouts if p.account == account)

    def is_empty(self) -> bool:
        return not self.payouts

    def __repr__(self) -> str:
        return (f"ReleaseResult({self.asset}: {self.total}/{self.distributable} "
                f"to {len(self.payouts)} payees)")


def payouts_by_account(payouts: List[Payout]) -> Dict[str, int]:
    """Aggregate a list of payouts into account -> total amount."""
    totals: Dict[str, int] = {}
    for p in payouts:
        totals[p.account] = totals.get(p.account, 0) + p.amount
    return totals
