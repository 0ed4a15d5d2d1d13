"""
custody.py - In-memory multi-asset custody

The Vault is a small double-entry custody ledger that plays the part of the
asset-transfer layer: it holds native and token balances per wallet, moves
value between wallets, and can refuse transfers the way a real recipient or
token contract would.

Key responsibilities:
    - Maintains per-wallet balances for every registered asset
    - Applies moves atomically (a rejected move changes nothing)
    - Logs every applied move for audit
    - Groups moves with atomic() so a failing caller can revert them
    - Fires recipient hooks, which lets tests model re-entrant recipients

VaultAccount adapts one vault wallet to the AssetAccount protocol consumed
by the splitter.
"""

from __future__ import annotations
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple

from .core import (
    ExecuteResult, SYSTEM_WALLET,
    WalletNotRegistered, AssetNotRegistered,
    _is_int, _require_account,
)


@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of an asset between two wallets.

    Attributes:
        quantity: Amount to transfer (positive int, smallest denomination).
        asset: Asset identifier.
        source: Wallet debited.
        dest: Wallet credited.
        memo: Free-form reference (e.g. "deposit", "release:native").
    """
    quantity: int
    asset: str
    source: str
    dest: str
    memo: str = ""

    def __post_init__(self):
        _require_account(self.source, "Move source")
        _require_account(self.dest, "Move dest")
        _require_account(self.asset, "Move asset")
        if not _is_int(self.quantity):
            raise ValueError(f"Move quantity must be int, got {type(self.quantity).__name__}")
        if self.quantity <= 0:
            raise ValueError(f"Move quantity must be positive, got {self.quantity}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.asset}: {self.source}→{self.dest})"


@dataclass(frozen=True, slots=True)
class Transfer:
    """An applied move with its position in the vault's log."""
    move: Move
    sequence_number: int


# Recipient hook: called with (vault, move) after the move is credited.
ReceiveHook = Callable[["Vault", Move], None]


class Vault:
    """
    Double-entry custody ledger for integer-denominated assets.

    Design Principles:
        - Always validates: every move is checked against registration,
          available balance and recipient refusals.
        - Always logs: every applied move is appended to transaction_log.

    Thread Safety:
        Not thread-safe. Callers serialize access (PaymentSplitter holds its
        own lock while it moves funds).

    Example:
        vault = Vault("custody", verbose=False)
        vault.register_asset("native")
        vault.register_wallet("splitter")
        vault.register_wallet("alice")
        vault.deposit("splitter", "native", 100)
        vault.execute(Move(40, "native", "splitter", "alice", "payout"))
    """

    def __init__(self, name: str, verbose: bool = True):
        """
        Create a vault.

        Args:
            name: Vault identifier
            verbose: Enable console output (default: True)
        """
        self.name = name
        self.verbose = verbose
        self.assets: Set[str] = set()
        self.registered_wallets: Set[str] = {SYSTEM_WALLET}
        self.balances: Dict[str, Dict[str, int]] = {SYSTEM_WALLET: defaultdict(int)}
        self.transaction_log: List[Transfer] = []
        self._next_sequence: int = 0
        self._refusals: Set[Tuple[str, str]] = set()
        self._hooks: Dict[str, List[ReceiveHook]] = defaultdict(list)

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def register_wallet(self, wallet_id: str) -> str:
        """
        Register a new wallet.

        Raises:
            ValueError: If wallet is already registered
        """
        _require_account(wallet_id, "wallet_id")
        if wallet_id in self.registered_wallets:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self.registered_wallets.add(wallet_id)
        self.balances[wallet_id] = defaultdict(int)
        return wallet_id

    def register_asset(self, asset: str) -> None:
        """
        Register an asset (native currency or token).

        Raises:
            ValueError: If asset is already registered
        """
        _require_account(asset, "asset")
        if asset in self.assets:
            raise ValueError(f"Asset {asset} already registered")
        self.assets.add(asset)
        if self.verbose:
            print(f"📝 Registered asset: {asset}")

    def is_registered(self, wallet_id: str) -> bool:
        return wallet_id in self.registered_wallets

    def reject_asset(self, wallet_id: str, asset: str, rejecting: bool = True) -> None:
        """Make `wallet_id` refuse (or accept again) incoming `asset`."""
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        if rejecting:
            self._refusals.add((wallet_id, asset))
        else:
            self._refusals.discard((wallet_id, asset))

    def on_receive(self, wallet_id: str, hook: ReceiveHook) -> None:
        """Register a hook fired after `wallet_id` is credited by a move."""
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        self._hooks[wallet_id].append(hook)

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_balance(self, wallet_id: str, asset: str) -> int:
        """
        Balance of `asset` in `wallet_id`.

        Raises:
            WalletNotRegistered: If wallet is not registered
            AssetNotRegistered: If asset is not registered
        """
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        if asset not in self.assets:
            raise AssetNotRegistered(f"Asset {asset} not registered")
        return self.balances[wallet_id].get(asset, 0)

    def get_wallet_balances(self, wallet_id: str) -> Dict[str, int]:
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        return {a: q for a, q in self.balances[wallet_id].items() if q}

    def total_supply(self, asset: str) -> int:
        """
        Sum of `asset` across all wallets, the system wallet included.

        Deposits are issued from the system wallet, so the total is zero
        unless balances were created outside of moves.
        """
        if asset not in self.assets:
            raise AssetNotRegistered(f"Asset {asset} not registered")
        return sum(self.balances[w].get(asset, 0) for w in sorted(self.registered_wallets))

    def verify_double_entry(self, expected_supplies: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
        """
        Verify that no move created or destroyed value.

        Args:
            expected_supplies: Optional asset -> expected total. Defaults to
                               zero for every asset (all value issued by
                               SYSTEM_WALLET).

        Returns:
            Dict with keys 'valid', 'supplies' and 'discrepancies'.
        """
        supplies = {}
        discrepancies = []
        for asset in sorted(self.assets):
            current = self.total_supply(asset)
            supplies[asset] = current
            expected = (expected_supplies or {}).get(asset, 0)
            if current != expected:
                discrepancies.append({
                    'asset': asset,
                    'expected': expected,
                    'actual': current,
                    'difference': current - expected,
                })
        return {
            'valid': len(discrepancies) == 0,
            'supplies': supplies,
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # EXECUTION
    # ========================================================================

    def deposit(self, wallet_id: str, asset: str, amount: int) -> ExecuteResult:
        """Issue `amount` of `asset` into `wallet_id` from the system wallet."""
        return self.execute(Move(amount, asset, SYSTEM_WALLET, wallet_id, "deposit"))

    def _validate(self, move: Move) -> Tuple[bool, str]:
        """
        Validate a move.

        Returns:
            Tuple of (success, reason); reason is empty on success
        """
        if move.asset not in self.assets:
            return False, f"asset not registered: {move.asset}"
        if move.source not in self.registered_wallets:
            return False, f"wallet not registered: {move.source}"
        if move.dest not in self.registered_wallets:
            return False, f"wallet not registered: {move.dest}"
        if (move.dest, move.asset) in self._refusals:
            return False, f"{move.dest} refuses {move.asset}"
        # SYSTEM_WALLET is exempt from balance validation (issuance)
        if move.source != SYSTEM_WALLET:
            available = self.balances[move.source].get(move.asset, 0)
            if available < move.quantity:
                return False, f"{move.source} {move.asset}: {available} < {move.quantity}"
        return True, ""

    def execute(self, move: Move) -> ExecuteResult:
        """
        Apply a move.

        Returns:
            ExecuteResult.APPLIED if the move was applied
            ExecuteResult.REJECTED if validation failed (no state change)

        Recipient hooks run after the credit; an exception raised by a hook
        propagates to the caller with the move already applied. Wrap calls in
        atomic() to revert in that case.
        """
        valid, reason = self._validate(move)
        if not valid:
            if self.verbose:
                print(f"✗ REJECTED: {reason}")
            return ExecuteResult.REJECTED

        self.balances[move.source][move.asset] -= move.quantity
        self.balances[move.dest][move.asset] += move.quantity
        self.transaction_log.append(Transfer(move, self._next_sequence))
        self._next_sequence += 1

        if self.verbose:
            print(f"✓ {move!r} [{move.memo}]")

        for hook in list(self._hooks.get(move.dest, ())):
            hook(self, move)
        return ExecuteResult.APPLIED

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Group moves into an all-or-nothing unit.

        On exception, balances and the transaction log are restored to their
        state at entry and the exception is re-raised. Blocks may nest.
        """
        saved_balances = {w: dict(b) for w, b in self.balances.items()}
        saved_log_len = len(self.transaction_log)
        saved_sequence = self._next_sequence
        try:
            yield
        except BaseException:
            # Wallets registered inside the block keep existing, empty
            for wallet_id in self.balances:
                self.balances[wallet_id] = defaultdict(int, saved_balances.get(wallet_id, {}))
            del self.transaction_log[saved_log_len:]
            self._next_sequence = saved_sequence
            if self.verbose:
                print(f"↺ ROLLED BACK vault {self.name} to sequence {saved_sequence}")
            raise

    def __repr__(self) -> str:
        return (f"Vault({self.name}: {len(self.registered_wallets)} wallets, "
                f"{len(self.assets)} assets, {len(self.transaction_log)} moves)")


class VaultAccount:
    """
    AssetAccount backed by one vault wallet.

    Example:
        account = VaultAccount(vault, "splitter")
        account.balance_of("native", "splitter")
        account.transfer("native", "alice", 40)
    """

    def __init__(self, vault: Vault, wallet_id: str):
        if not vault.is_registered(wallet_id):
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        self.vault = vault
        self.wallet_id = wallet_id

    def balance_of(self, asset: str, account: str) -> int:
        # Unknown assets hold nothing yet; they may be registered later
        if asset not in self.vault.assets:
            return 0
        return self.vault.get_balance(account, asset)

    def transfer(self, asset: str, to: str, amount: int) -> bool:
        result = self.vault.execute(Move(amount, asset, self.wallet_id, to, f"release:{asset}"))
        return result == ExecuteResult.APPLIED

    def assets(self) -> List[str]:
        return sorted(self.vault.assets)

    def atomic(self):
        return self.vault.atomic()

    def __repr__(self) -> str:
        return f"VaultAccount({self.vault.name}:{self.wallet_id})"
