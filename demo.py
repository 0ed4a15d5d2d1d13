#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Payment Splitter Step by Step

This is a pedagogical demonstration of how the splitter distributes value.
Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Foundation      - Custody, payees, the first full release
  4-6:   Release Modes   - Fractions, explicit amounts, single-payee pulls
  7-8:   Safety          - Rejected transfers roll back, unauthorized calls fail
  9-10:  Payee Changes   - Removal settlement, holder-derived share tables

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import sys

from splitter import (
    # Custody
    Vault, VaultAccount, NATIVE_ASSET,
    # Engine and access
    PaymentSplitter, RoleGate, AccessPosture, Action,
    # Errors
    NotAuthorized, TransferFailed,
    # Ownership helpers
    StaticOwnershipRegistry, derive_share_table, preview_payouts, seed_payees,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    token: str = "VTHO"
    splitter_wallet: str = "splitter"
    admin: str = "owner"

    alice_shares: int = 75
    bob_shares: int = 25

    first_deposit: int = 100
    second_deposit: int = 10_000
    explicit_amount: int = 200


CONFIG = DemoConfig()

# Global state for interactive mode
QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def show_balances(vault: Vault, wallets, asset: str = NATIVE_ASSET):
    for wallet in wallets:
        print(f"  {wallet:<10} {vault.get_balance(wallet, asset):>8} {asset}")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_custody():
    """Create the vault that holds every balance."""
    step_header(1, "Custody",
        "The splitter never holds value itself; a custody account does.")

    vault = Vault("tutorial", verbose=True)
    vault.register_asset(NATIVE_ASSET)
    vault.register_asset(CONFIG.token)
    for wallet in (CONFIG.splitter_wallet, "alice", "bob", "carol", "dave"):
        vault.register_wallet(wallet)

    section_header("Key Insight")
    print("""
    Deposits are issued from the SYSTEM wallet, so the sum of every wallet
    is zero for each asset. verify_double_entry() checks exactly that.
    """)
    print(f"verify_double_entry: {vault.verify_double_entry()['valid']}")
    return vault


def step_02_payees(vault: Vault):
    """Create the splitter and register payees."""
    step_header(2, "Payees and Shares",
        "A payee's weight is its shares divided by total shares.")

    splitter = PaymentSplitter(
        CONFIG.splitter_wallet,
        VaultAccount(vault, CONFIG.splitter_wallet),
        RoleGate(CONFIG.admin),
        verbose=True,
    )
    splitter.add_payee(CONFIG.admin, "alice", CONFIG.alice_shares)
    splitter.add_payee(CONFIG.admin, "bob", CONFIG.bob_shares)
    print(f"\n{splitter!r}")
    return splitter


def step_03_first_release(vault: Vault, splitter: PaymentSplitter):
    """Deposit and distribute the full balance."""
    step_header(3, "The First Release",
        "A full release pays every payee its share of everything received.")

    vault.deposit(CONFIG.splitter_wallet, NATIVE_ASSET, CONFIG.first_deposit)
    splitter.release(CONFIG.admin)
    show_balances(vault, ["alice", "bob"])

    section_header("Calling Again")
    result = splitter.release(CONFIG.admin)
    print(f"Second release paid {result.total}: nothing owed is not an error.")


# ============================================================================
# PHASE 2: RELEASE MODES (Steps 4-6)
# ============================================================================

def step_04_fractional(vault: Vault, splitter: PaymentSplitter):
    step_header(4, "Fractional Release",
        "Release only num/den of what is currently held.")

    vault.deposit(CONFIG.splitter_wallet, NATIVE_ASSET, CONFIG.second_deposit)
    splitter.release_in_shares(CONFIG.admin, 1, 100)
    print(f"Still held: {splitter.balance()}")


def step_05_explicit(vault: Vault, splitter: PaymentSplitter):
    step_header(5, "Explicit Amount",
        "Release a precise quantity independent of the rest of the balance.")

    splitter.release_balance(CONFIG.admin, CONFIG.explicit_amount)
    show_balances(vault, ["alice", "bob"])


def step_06_single_payee(vault: Vault, splitter: PaymentSplitter):
    step_header(6, "Single-Payee Pull",
        "Pay one payee its share without paying anyone else.")

    print(f"releasable(bob) = {splitter.releasable('bob')}")
    splitter.release(CONFIG.admin, "bob")
    show_balances(vault, ["alice", "bob"])


# ============================================================================
# PHASE 3: SAFETY (Steps 7-8)
# ============================================================================

def step_07_rollback(vault: Vault, splitter: PaymentSplitter):
    step_header(7, "All or Nothing",
        "If any transfer is refused, nobody is paid in that call.")

    vault.deposit(CONFIG.splitter_wallet, NATIVE_ASSET, CONFIG.first_deposit)
    vault.reject_asset("bob", NATIVE_ASSET)
    before = splitter.total_released()
    try:
        splitter.release(CONFIG.admin)
    except TransferFailed as e:
        print(f"TransferFailed: {e}")
    print(f"total_released unchanged: {splitter.total_released() == before}")
    vault.reject_asset("bob", NATIVE_ASSET, rejecting=False)
    splitter.release(CONFIG.admin)


def step_08_authorization(splitter: PaymentSplitter):
    step_header(8, "Authorization",
        "Only the admin role may change payees or trigger releases.")

    try:
        splitter.add_payee("mallory", "mallory", 1_000)
    except NotAuthorized as e:
        print(f"NotAuthorized: {e}")

    section_header("Relaxed Postures")
    print("With AccessPosture.PAYEE_PULL anyone may trigger a single-payee release.")
    gate = RoleGate(CONFIG.admin, posture=AccessPosture.PAYEE_PULL)
    print(f"bob may pull alice's share: {gate.is_authorized('bob', Action.RELEASE_TO_PAYEE, {'payee': 'alice'})}")

    print("\nWith AccessPosture.SELF_PULL only the payee itself (or an admin) may.")
    gate = RoleGate(CONFIG.admin, posture=AccessPosture.SELF_PULL)
    for caller in ("alice", "bob"):
        allowed = gate.is_authorized(caller, Action.RELEASE_TO_PAYEE, {'payee': 'alice'})
        print(f"{caller} may pull alice's share: {allowed}")


# ============================================================================
# PHASE 4: PAYEE CHANGES (Steps 9-10)
# ============================================================================

def step_09_removal(vault: Vault, splitter: PaymentSplitter):
    step_header(9, "Removal Settlement",
        "A removed payee is paid what it is owed, then never again.")

    vault.deposit(CONFIG.splitter_wallet, NATIVE_ASSET, CONFIG.first_deposit)
    splitter.remove_payee(CONFIG.admin, "alice")
    splitter.release(CONFIG.admin)
    show_balances(vault, ["alice", "bob"])
    print(f"\nverify_conservation: {splitter.verify_conservation()['valid']}")


def step_10_holders(vault: Vault):
    step_header(10, "Holder-Derived Shares",
        "Derive the share table from who holds share-bearing tokens.")

    registry = StaticOwnershipRegistry(["carol", "dave", "carol"])
    table = derive_share_table(registry)
    print(f"share table: {table}")

    holders = PaymentSplitter(
        "holders", VaultAccount(vault, _register(vault, "holders")),
        RoleGate(CONFIG.admin), verbose=True,
    )
    seed_payees(holders, CONFIG.admin, table)
    vault.deposit("holders", CONFIG.token, 90)
    print(f"preview: {preview_payouts(table, holders.balance(CONFIG.token))}")
    holders.release_token(CONFIG.admin, CONFIG.token)
    show_balances(vault, ["carol", "dave"], CONFIG.token)


def _register(vault: Vault, wallet: str) -> str:
    if not vault.is_registered(wallet):
        vault.register_wallet(wallet)
    return wallet


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       PAYMENT SPLITTER - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    vault = step_01_custody()
    wait_for_enter()

    splitter = step_02_payees(vault)
    wait_for_enter()

    step_03_first_release(vault, splitter)
    wait_for_enter()

    step_04_fractional(vault, splitter)
    wait_for_enter()

    step_05_explicit(vault, splitter)
    wait_for_enter()

    step_06_single_payee(vault, splitter)
    wait_for_enter()

    step_07_rollback(vault, splitter)
    wait_for_enter()

    step_08_authorization(splitter)
    wait_for_enter()

    step_09_removal(vault, splitter)
    wait_for_enter()

    step_10_holders(vault)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print(f"\nvault double entry holds: {vault.verify_double_entry()['valid']}")
    return vault, splitter


if __name__ == "__main__":
    main()
