"""
test_core_types.py - Unit tests for core data structures

Tests:
- Payee: creation, validation, immutability
- Payout: creation, validation, defaults
- ReleaseResult: totals and per-account lookup
- payouts_by_account: aggregation
- Protocol conformance of the shipped implementations
"""

import pytest
from dataclasses import FrozenInstanceError

from splitter import (
    Payee, Payout, ReleaseResult, payouts_by_account,
    Action, InvalidShares, SplitterError, NotAuthorized, CustodyError,
    WalletNotRegistered, AssetNotRegistered,
    AssetAccount, AccessGate, OwnershipRegistry,
    RoleGate, OpenGate, VaultAccount, StaticOwnershipRegistry,
    NATIVE_ASSET,
)
from tests.fakes import FakeAccount, FakeGate, make_vault


class TestPayee:
    """Tests for Payee creation and validation."""

    def test_create_valid_payee(self):
        payee = Payee("alice", 75)
        assert payee.account == "alice"
        assert payee.shares == 75

    def test_payee_is_immutable(self):
        payee = Payee("alice", 1)
        with pytest.raises(FrozenInstanceError):
            payee.shares = 2

    @pytest.mark.parametrize("shares", [0, -1])
    def test_non_positive_shares_rejected(self, shares):
        with pytest.raises(InvalidShares):
            Payee("alice", shares)

    @pytest.mark.parametrize("shares", [1.5, "3", True, None])
    def test_non_int_shares_rejected(self, shares):
        with pytest.raises(InvalidShares):
            Payee("alice", shares)

    @pytest.mark.parametrize("account", ["", "   "])
    def test_empty_account_rejected(self, account):
        with pytest.raises(ValueError, match="cannot be empty"):
            Payee(account, 1)

    def test_equality_by_value(self):
        assert Payee("alice", 3) == Payee("alice", 3)
        assert Payee("alice", 3) != Payee("alice", 4)


class TestPayout:
    """Tests for Payout creation and validation."""

    def test_defaults(self):
        payout = Payout(NATIVE_ASSET, "alice", 10)
        assert payout.action == Action.RELEASE
        assert payout.sequence_number == -1

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_amount_rejected(self, amount):
        with pytest.raises(ValueError, match="positive"):
            Payout(NATIVE_ASSET, "alice", amount)

    def test_float_amount_rejected(self):
        with pytest.raises(ValueError, match="int"):
            Payout(NATIVE_ASSET, "alice", 1.0)

    def test_empty_asset_rejected(self):
        with pytest.raises(ValueError):
            Payout("", "alice", 1)


class TestReleaseResult:
    """Tests for ReleaseResult aggregation."""

    def test_empty_result(self):
        result = ReleaseResult(NATIVE_ASSET, 0)
        assert result.is_empty()
        assert result.total == 0
        assert result.amount_for("alice") == 0

    def test_total_and_amount_for(self):
        result = ReleaseResult(NATIVE_ASSET, 100, (
            Payout(NATIVE_ASSET, "alice", 75),
            Payout(NATIVE_ASSET, "bob", 25),
        ))
        assert not result.is_empty()
        assert result.total == 100
        assert result.amount_for("alice") == 75
        assert result.amount_for("carol") == 0

    def test_payouts_by_account(self):
        payouts = [
            Payout(NATIVE_ASSET, "alice", 5),
            Payout(NATIVE_ASSET, "bob", 2),
            Payout(NATIVE_ASSET, "alice", 7),
        ]
        assert payouts_by_account(payouts) == {"alice": 12, "bob": 2}


class TestExceptionHierarchy:

    def test_all_errors_derive_from_splitter_error(self):
        assert issubclass(NotAuthorized, SplitterError)
        assert issubclass(WalletNotRegistered, CustodyError)
        assert issubclass(AssetNotRegistered, SplitterError)


class TestProtocolConformance:
    """Shipped implementations satisfy the runtime-checkable protocols."""

    def test_asset_accounts(self):
        vault = make_vault()
        assert isinstance(VaultAccount(vault, "splitter"), AssetAccount)
        assert isinstance(FakeAccount("splitter"), AssetAccount)

    def test_access_gates(self):
        assert isinstance(RoleGate("owner"), AccessGate)
        assert isinstance(OpenGate(), AccessGate)
        assert isinstance(FakeGate(), AccessGate)

    def test_ownership_registry(self):
        assert isinstance(StaticOwnershipRegistry(), OwnershipRegistry)
