"""
test_distribution_scenarios.py - End-to-end distribution flows

Scenarios:
- Reference splits for every release mode
- Three equal payees with dust carried between deposits
- Delegated administration through role grants
- Payees leaving and joining mid-stream
- Holder-weighted distribution of native and token balances
"""

import pytest

from splitter import (
    ADMIN_ROLE, AccessPosture, InsufficientBalance, NotAuthorized,
    StaticOwnershipRegistry, derive_share_table, preview_payouts, seed_payees,
    NATIVE_ASSET,
)
from tests.fakes import OWNER, TOKEN, deposit, make_splitter, payee_balances


# =============================================================================
# REFERENCE SPLITS
# =============================================================================

class TestReferenceSplits:

    def test_two_deposits_two_releases(self):
        splitter, vault = make_splitter({"alice": 75, "bob": 25})
        deposit(vault, 100)
        splitter.release(OWNER)
        assert payee_balances(vault, ["alice", "bob"]) == {"alice": 75, "bob": 25}

        deposit(vault, 100)
        splitter.release(OWNER)
        assert payee_balances(vault, ["alice", "bob"]) == {"alice": 150, "bob": 50}

    def test_whole_fraction_is_a_full_release(self):
        splitter, vault = make_splitter({"alice": 2})
        deposit(vault, 100)
        splitter.release_in_shares(OWNER, 1, 1)
        assert vault.get_balance("alice", NATIVE_ASSET) == 100

    def test_one_percent_release(self):
        splitter, vault = make_splitter({"alice": 75, "bob": 25})
        deposit(vault, 10000)
        splitter.release_in_shares(OWNER, 1, 100)
        assert payee_balances(vault, ["alice", "bob"]) == {"alice": 75, "bob": 25}

    def test_explicit_amount_release(self):
        splitter, vault = make_splitter({"alice": 75, "bob": 25})
        deposit(vault, 10000)
        splitter.release_balance(OWNER, 200)
        assert payee_balances(vault, ["alice", "bob"]) == {"alice": 150, "bob": 50}
        with pytest.raises(InsufficientBalance):
            splitter.release_balance(OWNER, splitter.balance() + 1)


# =============================================================================
# EQUAL PAYEES
# =============================================================================

class TestEqualPayees:

    @pytest.fixture
    def artists(self):
        return make_splitter({"alice": 1, "bob": 1, "carol": 1})

    def test_one_deposit(self, artists):
        splitter, vault = artists
        deposit(vault, 100)
        splitter.release(OWNER)
        assert payee_balances(vault, ["alice", "bob", "carol"]) == {
            "alice": 33, "bob": 33, "carol": 33,
        }

    def test_payouts_between_deposits(self, artists):
        splitter, vault = artists
        deposit(vault, 100)
        splitter.release(OWNER)
        deposit(vault, 100)
        splitter.release(OWNER)
        assert payee_balances(vault, ["alice", "bob", "carol"]) == {
            "alice": 66, "bob": 66, "carol": 66,
        }
        assert splitter.balance() == 2

    def test_single_payee_pull_in_relaxed_posture(self):
        splitter, vault = make_splitter({"alice": 2, "bob": 2}, posture=AccessPosture.PAYEE_PULL)
        deposit(vault, 100)
        splitter.release("alice", "alice")
        assert payee_balances(vault, ["alice", "bob"]) == {"alice": 50, "bob": 0}

    def test_token_pull_restricted_to_the_payee(self):
        splitter, vault = make_splitter({"alice": 2, "bob": 2, "carol": 2},
                                        posture=AccessPosture.SELF_PULL)
        deposit(vault, 300, TOKEN)

        with pytest.raises(NotAuthorized, match="carol is not authorized"):
            splitter.release_token("carol", TOKEN, "bob")
        splitter.release_token("bob", TOKEN, "bob")

        assert payee_balances(vault, ["alice", "bob", "carol"], TOKEN) == {
            "alice": 0, "bob": 100, "carol": 0,
        }


# =============================================================================
# ADMINISTRATION
# =============================================================================

class TestDelegatedAdministration:

    def test_granted_admin_runs_the_splitter(self):
        splitter, vault = make_splitter()
        splitter.gate.grant_role(OWNER, ADMIN_ROLE, "dave")
        splitter.add_payee("dave", "alice", 1)
        splitter.add_payee("dave", "bob", 3)
        deposit(vault, 400)
        splitter.release("dave")
        assert payee_balances(vault, ["alice", "bob"]) == {"alice": 100, "bob": 300}


# =============================================================================
# PAYEE CHANGES
# =============================================================================

class TestPayeeChanges:

    def test_payee_leaves_mid_stream(self):
        splitter, vault = make_splitter({"alice": 1, "bob": 1})
        deposit(vault, 100)
        splitter.release(OWNER)
        deposit(vault, 100)

        splitter.remove_payee(OWNER, "alice")
        assert vault.get_balance("alice", NATIVE_ASSET) == 100

        splitter.release(OWNER)
        assert vault.get_balance("bob", NATIVE_ASSET) == 100

        deposit(vault, 100)
        splitter.release(OWNER)
        assert payee_balances(vault, ["alice", "bob"]) == {"alice": 100, "bob": 200}
        assert splitter.balance() == 0

    def test_late_joiner_is_weighted_against_cumulative_inflow(self):
        splitter, vault = make_splitter({"alice": 1})
        deposit(vault, 100)
        splitter.release(OWNER)
        splitter.add_payee(OWNER, "bob", 1)
        deposit(vault, 100)

        splitter.release(OWNER)

        # entitlement = 200 * 1 // 2 each; alice already holds hers
        assert payee_balances(vault, ["alice", "bob"]) == {"alice": 100, "bob": 100}

    def test_churn_keeps_books_balanced(self):
        splitter, vault = make_splitter({"alice": 75, "bob": 25})
        deposit(vault, 100)
        splitter.release(OWNER)
        deposit(vault, 100)
        splitter.add_payee(OWNER, "carol", 25)
        splitter.remove_payee(OWNER, "alice")
        splitter.release(OWNER)
        deposit(vault, 300)
        splitter.release_in_shares(OWNER, 2, 3)
        splitter.release(OWNER)

        paid = sum(payee_balances(vault, ["alice", "bob", "carol"]).values())
        assert paid + splitter.balance() == 500
        assert splitter.total_released() == paid
        assert splitter.verify_conservation()['valid']
        assert vault.verify_double_entry()['valid']


# =============================================================================
# HOLDER-WEIGHTED DISTRIBUTION
# =============================================================================

class TestHolderDistribution:

    def test_distribute_native_and_token_to_holders(self):
        registry = StaticOwnershipRegistry(["alice", "bob", "alice", "carol", "alice"])
        table = derive_share_table(registry)
        splitter, vault = make_splitter()
        seed_payees(splitter, OWNER, table)

        deposit(vault, 1000)
        deposit(vault, 50, TOKEN)
        expected_native = preview_payouts(table, splitter.balance())
        expected_token = preview_payouts(table, splitter.balance(TOKEN))

        splitter.release(OWNER)
        splitter.release_token(OWNER, TOKEN)

        assert payee_balances(vault, table) == expected_native == {"alice": 600, "bob": 200, "carol": 200}
        assert payee_balances(vault, table, TOKEN) == expected_token == {"alice": 30, "bob": 10, "carol": 10}

    def test_reseed_after_new_mint(self):
        registry = StaticOwnershipRegistry(["alice", "bob"])
        splitter, vault = make_splitter()
        seed_payees(splitter, OWNER, derive_share_table(registry))

        registry.mint("carol")
        added = seed_payees(splitter, OWNER, derive_share_table(registry))

        assert [p.account for p in added] == ["carol"]
        deposit(vault, 300)
        splitter.release(OWNER)
        assert payee_balances(vault, ["alice", "bob", "carol"]) == {
            "alice": 100, "bob": 100, "carol": 100,
        }
