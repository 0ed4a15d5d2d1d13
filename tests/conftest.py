"""
conftest.py - Shared pytest fixtures for splitter tests

Provides common fixtures used across unit, conformance and functional tests:
- Custody vaults with the standard wallets and assets
- Splitters in both authorization postures
- Splitters with the usual 75/25 payee table
"""

import pytest

from splitter import AccessPosture, ShareLedger

from tests.fakes import (
    FakeAccount, FakeGate, make_vault, make_splitter, SPLITTER,
)


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def share_ledger():
    """Empty share ledger."""
    return ShareLedger()


@pytest.fixture
def vault():
    """Vault with native and token assets and the standard wallets."""
    return make_vault()


@pytest.fixture
def fake_account():
    """Dict-backed asset account for the splitter address."""
    return FakeAccount(SPLITTER)


@pytest.fixture
def fake_gate():
    """Gate that denies everything until told otherwise."""
    return FakeGate()


# =============================================================================
# SPLITTER FIXTURES
# =============================================================================

@pytest.fixture
def splitter_env(vault):
    """(splitter, vault) with no payees, admin-only posture."""
    return make_splitter(vault=vault)


@pytest.fixture
def split_75_25(vault):
    """(splitter, vault) with alice 75 and bob 25 shares."""
    return make_splitter({"alice": 75, "bob": 25}, vault=vault)


@pytest.fixture
def pull_splitter(vault):
    """(splitter, vault) in the payee-pull posture with alice 2 and bob 2 shares."""
    return make_splitter({"alice": 2, "bob": 2}, posture=AccessPosture.PAYEE_PULL, vault=vault)


@pytest.fixture
def self_pull_splitter(vault):
    """(splitter, vault) where only a payee itself or an admin may pull, alice 2 and bob 2 shares."""
    return make_splitter({"alice": 2, "bob": 2}, posture=AccessPosture.SELF_PULL, vault=vault)
