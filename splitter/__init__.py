"""
splitter - Proportional Payment Splitter

Distributes native-currency and token balances held by one account among a
dynamic, share-weighted set of payees. Every payee's cumulative payout tracks
its share of cumulative inflow, whatever the order of deposits, payee changes
and partial releases.

Usage:
    from splitter import (
        PaymentSplitter, RoleGate, Vault, VaultAccount, NATIVE_ASSET,
    )

    vault = Vault("custody")
    vault.register_asset(NATIVE_ASSET)
    for wallet in ("splitter", "alice", "bob"):
        vault.register_wallet(wallet)

    splitter = PaymentSplitter(
        "splitter", VaultAccount(vault, "splitter"), RoleGate("owner")
    )
    splitter.add_payee("owner", "alice", 75)
    splitter.add_payee("owner", "bob", 25)

    # Deposit, then distribute
    vault.deposit("splitter", NATIVE_ASSET, 100)
    result = splitter.release("owner")    # alice 75, bob 25
"""

# Core types
from .core import (
    AssetAccount,
    AccessGate,
    OwnershipRegistry,
    Action,
    AccessPosture,
    ExecuteResult,
    Payee,
    Payout,
    ReleaseResult,
    payouts_by_account,
    SplitterError,
    NotAuthorized,
    DuplicatePayee,
    UnknownPayee,
    InvalidShares,
    InvalidFraction,
    InsufficientBalance,
    TransferFailed,
    NoShares,
    CustodyError,
    WalletNotRegistered,
    AssetNotRegistered,
    NATIVE_ASSET,
    SYSTEM_WALLET,
    ADMIN_ROLE,
    DEFAULT_ADMIN_ROLE,
)

# Share ledger
from .shares import ShareLedger, LedgerSnapshot

# Distribution engine
from .engine import (
    PaymentSplitter,
    compute_owed,
    plan_distribution,
)

# Authorization
from .access import RoleGate, OpenGate

# Custody
from .custody import Vault, VaultAccount, Move, Transfer

# Ownership-derived share tables
from .ownership import (
    StaticOwnershipRegistry,
    derive_share_table,
    preview_payouts,
    seed_payees,
)

__all__ = [
    # Core
    'AssetAccount', 'AccessGate', 'OwnershipRegistry',
    'Action', 'AccessPosture', 'ExecuteResult',
    'Payee', 'Payout', 'ReleaseResult', 'payouts_by_account',
    'SplitterError', 'NotAuthorized', 'DuplicatePayee', 'UnknownPayee',
    'InvalidShares', 'InvalidFraction', 'InsufficientBalance',
    'TransferFailed', 'NoShares',
    'CustodyError', 'WalletNotRegistered', 'AssetNotRegistered',
    'NATIVE_ASSET', 'SYSTEM_WALLET', 'ADMIN_ROLE', 'DEFAULT_ADMIN_ROLE',
    # Share ledger
    'ShareLedger', 'LedgerSnapshot',
    # Engine
    'PaymentSplitter', 'compute_owed', 'plan_distribution',
    # Access
    'RoleGate', 'OpenGate',
    # Custody
    'Vault', 'VaultAccount', 'Move', 'Transfer',
    # Ownership
    'StaticOwnershipRegistry', 'derive_share_table', 'preview_payouts', 'seed_payees',
]

__version__ = '1.0.0'
