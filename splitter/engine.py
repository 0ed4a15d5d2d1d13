"""
engine.py - Distribution Engine

=== DISTRIBUTION MODEL ===

Every release call distributes `distributable` of one asset among a set of
target payees:

    total_receivable = total_released[asset] + distributable
    owed(p)          = total_receivable * shares(p) // total_shares
                       - released[asset][p]

A payee with owed(p) <= 0 is skipped; that is "nothing owed", not an error.
Integer division can only under-pay, and the remainder ("dust") stays in the
account where the next call picks it up.

Release modes differ only in targets and distributable:
    full          all payees   current balance
    fractional    all payees   balance * num // den
    explicit      all payees   amount (must not exceed balance)
    single payee  one payee    current balance

=== PURE FUNCTIONS ===

    compute_owed(total_receivable, shares, total_shares, already_released)
    plan_distribution(ledger, asset, targets, distributable) -> [Payout]

These read a ShareLedger and never mutate it.

=== ORCHESTRATOR ===

PaymentSplitter authorizes through the AccessGate, reads balances from the
AssetAccount, updates the ShareLedger counters and only then transfers.
Every state-changing call is serialized by a per-instance lock and runs as
one all-or-nothing unit: any failure restores the counters and reverts the
transfers already made in the call.
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple
import threading

from .core import (
    AssetAccount, AccessGate, Action,
    Payee, Payout, ReleaseResult,
    NATIVE_ASSET,
    NotAuthorized, UnknownPayee, InvalidFraction, InsufficientBalance,
    TransferFailed, NoShares,
    _is_int, _require_account,
)
from .shares import ShareLedger


# =============================================================================
# PURE FUNCTIONS - The core logic, trivially testable
# =============================================================================

def compute_owed(total_receivable: int, shares: int, total_shares: int, already_released: int) -> int:
    """
    Amount currently owed to one payee. Pure function.

    Args:
        total_receivable: Everything released so far plus what this call distributes
        shares: The payee's share count
        total_shares: Sum of all current shares
        already_released: Cumulative amount already paid to the payee

    Returns:
        Owed amount; zero or negative means nothing is owed.

    Raises:
        NoShares: If total_shares is zero
    """
    if total_shares <= 0:
        raise NoShares("no shares registered")
    return total_receivable * shares // total_shares - already_released


def _next_payout(
    ledger: ShareLedger,
    asset: str,
    account: str,
    total_receivable: int,
    remaining: int,
) -> int:
    """Owed amount for `account`, capped at what is left of this call's distributable."""
    shares = ledger.shares(account)
    if shares == 0 or ledger.total_shares == 0 or remaining <= 0:
        return 0
    owed = compute_owed(total_receivable, shares, ledger.total_shares, ledger.released(asset, account))
    return min(owed, remaining) if owed > 0 else 0


def plan_distribution(
    ledger: ShareLedger,
    asset: str,
    targets: Sequence[str],
    distributable: int,
    action: Action = Action.RELEASE,
) -> List[Payout]:
    """
    Compute the payouts one release call would make. Pure function.

    Args:
        ledger: Share ledger to read
        asset: Asset being distributed
        targets: Payee accounts, in ledger order
        distributable: Amount treated as available for this call
        action: Entry point recorded on each payout

    Returns:
        Payouts with a positive amount, in target order.

    Invariants:
        - Total planned never exceeds distributable
        - With a fixed payee set every payee is paid exactly its owed amount
        - A second plan after executing this one is empty unless new value arrives

    Raises:
        NoShares: If the ledger has no shares
    """
    if ledger.total_shares == 0:
        raise NoShares("no shares registered")

    total_receivable = ledger.total_released(asset) + distributable
    remaining = distributable
    payouts: List[Payout] = []
    for account in targets:
        amount = _next_payout(ledger, asset, account, total_receivable, remaining)
        if amount <= 0:
            continue
        payouts.append(Payout(asset, account, amount, action))
        remaining -= amount
    return payouts


# =============================================================================
# ORCHESTRATOR
# =============================================================================

class PaymentSplitter:
    """
    Proportional payment splitter over a share ledger.

    Exposes payee management, every release mode for the native asset and
    for token assets, and read-only queries.

    Thread Safety:
        State-changing calls are serialized by a re-entrant lock. A recipient
        that calls back into the splitter during a transfer sees counters
        already debited for its own payout.

    Example:
        vault = Vault("custody", verbose=False)
        vault.register_asset(NATIVE_ASSET)
        for w in ("splitter", "alice", "bob"):
            vault.register_wallet(w)
        splitter = PaymentSplitter("splitter", VaultAccount(vault, "splitter"),
                                   RoleGate("owner"), verbose=False)
        splitter.add_payee("owner", "alice", 75)
        splitter.add_payee("owner", "bob", 25)
        vault.deposit("splitter", NATIVE_ASSET, 100)
        splitter.release("owner")     # alice 75, bob 25
    """

    def __init__(
        self,
        address: str,
        account: AssetAccount,
        gate: AccessGate,
        verbose: bool = True,
    ):
        """
        Create a splitter.

        Args:
            address: Account whose balances are distributed
            account: Custody interface holding those balances
            gate: Authorization predicate for every state-changing call
            verbose: Enable console output (default: True)
        """
        _require_account(address, "address")
        self.address = address
        self.account = account
        self.gate = gate
        self.verbose = verbose
        self.ledger = ShareLedger()
        self.payout_log: List[Payout] = []
        self._tracked_assets: List[str] = [NATIVE_ASSET]
        self._next_sequence: int = 0
        self._lock = threading.RLock()

    # ========================================================================
    # QUERIES (read-only)
    # ========================================================================

    @property
    def total_shares(self) -> int:
        return self.ledger.total_shares

    @property
    def payee_count(self) -> int:
        return self.ledger.payee_count

    def payees(self) -> Tuple[Payee, ...]:
        return self.ledger.payees()

    def payee(self, index: int) -> Payee:
        return self.ledger.payee(index)

    def shares(self, account: str) -> int:
        return self.ledger.shares(account)

    def is_payee(self, account: str) -> bool:
        return self.ledger.is_payee(account)

    def released(self, account: str, asset: str = NATIVE_ASSET) -> int:
        return self.ledger.released(asset, account)

    def total_released(self, asset: str = NATIVE_ASSET) -> int:
        return self.ledger.total_released(asset)

    def balance(self, asset: str = NATIVE_ASSET) -> int:
        """Current holdings of `asset` by the splitter."""
        return self.account.balance_of(asset, self.address)

    def releasable(self, account: str, asset: str = NATIVE_ASSET) -> int:
        """Amount a single-payee release to `account` would pay right now."""
        if not self.ledger.is_payee(account):
            return 0
        balance = self.balance(asset)
        total_receivable = self.ledger.total_released(asset) + balance
        return _next_payout(self.ledger, asset, account, total_receivable, balance)

    def tracked_assets(self) -> List[str]:
        """Assets settled on payee removal: native, tracked tokens, and any asset ever released."""
        assets = list(self._tracked_assets)
        for asset in self.ledger.assets():
            if asset not in assets:
                assets.append(asset)
        return assets

    def settlement_assets(self) -> List[str]:
        """Assets checked on payee removal: tracked assets, then every asset custody can hold."""
        assets = self.tracked_assets()
        for asset in self.account.assets():
            if asset not in assets:
                assets.append(asset)
        return assets

    def track_asset(self, asset: str) -> None:
        """Include `asset` in the settlement performed on payee removal."""
        _require_account(asset, "asset")
        with self._lock:
            if asset not in self._tracked_assets:
                self._tracked_assets.append(asset)

    def verify_conservation(self) -> Dict[str, Any]:
        """Check the share and release invariants for every tracked asset."""
        return self.ledger.verify_conservation(self.tracked_assets())

    # ========================================================================
    # PAYEE MANAGEMENT
    # ========================================================================

    def add_payee(self, caller: str, account: str, shares: int) -> Payee:
        """
        Add a payee at the end of the payee order.

        Raises:
            NotAuthorized: If caller may not add payees
            InvalidShares: If shares is not a positive int
            DuplicatePayee: If account is already a payee
        """
        with self._transaction():
            self._authorize(caller, Action.ADD_PAYEE, {'account': account, 'shares': shares})
            _require_account(account)
            entry = self.ledger.add_payee(account, shares)
        if self.verbose:
            print(f"📝 Payee added: {account} ({shares} shares, total {self.total_shares})")
        return entry

    def remove_payee(self, caller: str, account: str) -> List[ReleaseResult]:
        """
        Settle a payee's outstanding claim and remove it.

        For every asset the splitter currently holds a non-zero balance of,
        the payee is paid what a single-payee release would pay. The entry and its shares are
        then deleted; its release counters stay for audit.

        Returns:
            One ReleaseResult per settled asset

        Raises:
            NotAuthorized: If caller may not remove payees
            UnknownPayee: If account is not a payee
            TransferFailed: If a settlement transfer is rejected (nothing is removed)
        """
        with self._transaction():
            self._authorize(caller, Action.REMOVE_PAYEE, {'account': account})
            if not self.ledger.is_payee(account):
                raise UnknownPayee(f"account {account} has no shares")

            settlements = []
            for asset in self.settlement_assets():
                balance = self.balance(asset)
                if balance <= 0:
                    continue
                settlements.append(
                    self._distribute(asset, [account], balance, Action.REMOVE_PAYEE)
                )
            entry = self.ledger.remove_payee(account)

        if self.verbose:
            settled = ", ".join(f"{r.total} {r.asset}" for r in settlements if r.total) or "nothing owed"
            print(f"🗑  Payee removed: {account} ({entry.shares} shares, settled {settled})")
        return settlements

    # ========================================================================
    # RELEASES - native asset
    # ========================================================================

    def release(self, caller: str, payee: Optional[str] = None) -> ReleaseResult:
        """Full release of the native balance, to every payee or to `payee` only."""
        return self.release_token(caller, NATIVE_ASSET, payee)

    def release_in_shares(self, caller: str, num: int, den: int) -> ReleaseResult:
        """Release `num/den` of the native balance to every payee."""
        return self.release_token_in_shares(caller, NATIVE_ASSET, num, den)

    def release_balance(self, caller: str, amount: int) -> ReleaseResult:
        """Release exactly `amount` of the native balance to every payee."""
        return self.release_token_balance(caller, NATIVE_ASSET, amount)

    # ========================================================================
    # RELEASES - any asset
    # ========================================================================

    def release_token(self, caller: str, asset: str, payee: Optional[str] = None) -> ReleaseResult:
        """
        Full release of `asset`.

        Args:
            caller: Account triggering the release
            asset: Asset to distribute
            payee: If given, only this payee is paid (single-payee pull)

        Raises:
            NotAuthorized: If caller may not trigger this release
            UnknownPayee: If payee is given and is not a current payee
            NoShares: If there are no payees
            TransferFailed: If a transfer is rejected (nothing is paid)
        """
        with self._transaction():
            if payee is None:
                self._authorize(caller, Action.RELEASE, {'asset': asset})
                _require_account(asset, "asset")
                self._require_shares()
                targets = self.ledger.accounts()
                action = Action.RELEASE
            else:
                self._authorize(caller, Action.RELEASE_TO_PAYEE, {'asset': asset, 'payee': payee})
                _require_account(asset, "asset")
                if not self.ledger.is_payee(payee):
                    raise UnknownPayee(f"account {payee} has no shares")
                targets = [payee]
                action = Action.RELEASE_TO_PAYEE
            result = self._distribute(asset, targets, self.balance(asset), action)
        self._report(result)
        return result

    def release_token_in_shares(self, caller: str, asset: str, num: int, den: int) -> ReleaseResult:
        """
        Release the fraction `num/den` of the current `asset` balance.

        distributable = balance * num // den

        Raises:
            NotAuthorized: If caller may not trigger releases
            InvalidFraction: If den <= 0 or num is outside [0, den]
            NoShares: If there are no payees
            TransferFailed: If a transfer is rejected (nothing is paid)
        """
        with self._transaction():
            self._authorize(caller, Action.RELEASE, {'asset': asset, 'num': num, 'den': den})
            _require_account(asset, "asset")
            if not (_is_int(num) and _is_int(den)):
                raise InvalidFraction(f"fraction must be ints, got {num!r}/{den!r}")
            if den <= 0:
                raise InvalidFraction(f"denominator must be positive, got {den}")
            if num < 0 or num > den:
                raise InvalidFraction(f"fraction {num}/{den} must be within [0, 1]")
            self._require_shares()
            distributable = self.balance(asset) * num // den
            result = self._distribute(asset, self.ledger.accounts(), distributable, Action.RELEASE)
        self._report(result)
        return result

    def release_token_balance(self, caller: str, asset: str, amount: int) -> ReleaseResult:
        """
        Release exactly `amount` of `asset`, independent of the rest of the balance.

        Raises:
            NotAuthorized: If caller may not trigger releases
            ValueError: If amount is not a non-negative int
            InsufficientBalance: If amount exceeds the current balance
            NoShares: If there are no payees
            TransferFailed: If a transfer is rejected (nothing is paid)
        """
        with self._transaction():
            self._authorize(caller, Action.RELEASE, {'asset': asset, 'amount': amount})
            _require_account(asset, "asset")
            if not _is_int(amount) or amount < 0:
                raise ValueError(f"amount must be a non-negative int, got {amount!r}")
            self._require_shares()
            balance = self.balance(asset)
            if amount > balance:
                raise InsufficientBalance(
                    f"amount {amount} must be less or equal than {asset} balance {balance}"
                )
            result = self._distribute(asset, self.ledger.accounts(), amount, Action.RELEASE)
        self._report(result)
        return result

    # ========================================================================
    # INTERNALS
    # ========================================================================

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """
        Serialize a call and make it all-or-nothing.

        Restores the share ledger, payout log and tracked assets, and reverts
        custody transfers, if the block raises.
        """
        with self._lock:
            snapshot = self.ledger.snapshot()
            log_len = len(self.payout_log)
            sequence = self._next_sequence
            tracked = list(self._tracked_assets)
            try:
                with self.account.atomic():
                    yield
            except BaseException:
                self.ledger.restore(snapshot)
                del self.payout_log[log_len:]
                self._next_sequence = sequence
                self._tracked_assets = tracked
                raise

    def _authorize(self, caller: str, action: Action, context: Dict[str, Any]) -> None:
        if not self.gate.is_authorized(caller, action, context):
            if self.verbose:
                print(f"✗ REJECTED: {caller} not authorized for {action.value}")
            raise NotAuthorized(f"account {caller} is not authorized for {action.value}")

    def _require_shares(self) -> None:
        if self.ledger.total_shares == 0:
            raise NoShares("no shares registered")

    def _distribute(
        self,
        asset: str,
        targets: Sequence[str],
        distributable: int,
        action: Action,
    ) -> ReleaseResult:
        """
        Execute the distribution algorithm for one call.

        The owed amount of each target is read from the ledger right before
        its payout, so a re-entrant call that already paid a target leaves
        nothing owed here. Counters are recorded before the transfer.
        """
        self._require_shares()
        if asset not in self._tracked_assets:
            self._tracked_assets.append(asset)

        total_receivable = self.ledger.total_released(asset) + distributable
        remaining = distributable
        executed: List[Payout] = []

        for account in list(targets):
            amount = _next_payout(self.ledger, asset, account, total_receivable, remaining)
            if amount <= 0:
                continue
            payout = Payout(asset, account, amount, action, self._next_sequence)
            self._next_sequence += 1
            remaining -= amount

            self.ledger.record_release(asset, account, amount)
            self.payout_log.append(payout)
            executed.append(payout)

            if not self.account.transfer(asset, account, amount):
                if self.verbose:
                    print(f"✗ REJECTED: transfer of {amount} {asset} to {account} failed")
                raise TransferFailed(f"transfer of {amount} {asset} to {account} failed")

        return ReleaseResult(asset, distributable, tuple(executed))

    def _report(self, result: ReleaseResult) -> None:
        if not self.verbose:
            return
        if result.is_empty():
            print(f"✓ RELEASED nothing owed ({result.asset}, distributable {result.distributable})")
            return
        paid = ", ".join(f"{p.account}={p.amount}" for p in result.payouts)
        print(f"✓ RELEASED {result.total} {result.asset}: {paid}")

    def __repr__(self) -> str:
        return (f"PaymentSplitter({self.address}: {self.payee_count} payees, "
                f"{self.total_shares} shares, {len(self.payout_log)} payouts)")
