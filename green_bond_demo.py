#!/usr/bin/env python3
"""
green_bond_demo.py - Interactive Tutorial: A Green Bond from Issuance to Maturity

Walks one bond series through its whole life. Each step builds on the
previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Issuance        - Term sheet, roles, funding investors
  4-6:   Coupons         - Purchase, whole-period accrual, claims
  7-8:   Disclosure      - Impact reports, certifications, verification
  9-10:  Safety          - Rejections, atomic rollback, re-entrancy
  11-12: Maturity        - Redemption, emergency withdrawal

Run:
    python green_bond_demo.py           # Interactive mode
    python green_bond_demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import sys

from greenbond import (
    BondTerms, create_green_bond, GreenBond,
    TokenLedger, TokenSettlement, ManualClock,
    GreenBondError, NoCouponAvailable,
    SECONDS_PER_DAY, SECONDS_PER_YEAR, VERIFIER_ROLE, ISSUER_ROLE,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    issuer: str = "treasury"
    verifier: str = "auditor"

    face_value: int = 1000
    total_supply: int = 1000
    coupon_rate_bps: int = 500
    coupon_period_days: int = 90
    maturity_years: int = 3

    investor_funds: int = 250_000
    coupon_reserve: int = 50_000


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def show_balances(bond: GreenBond, *accounts: str):
    token = bond.settlement.token
    for account in accounts:
        print(f"  {account:<10} {token.symbol}={token.balance_of(account):>9}  "
              f"{bond.terms.symbol}={bond.balance_of(account)}")
    print(f"  {'custody':<10} {token.symbol}={bond.custody_balance():>9}")


# ============================================================================
# PHASE 1: ISSUANCE
# ============================================================================

def step_01_issue():
    step_header(1, "Issuing the Series",
        "A term sheet becomes a live bond with a fixed maturity.")

    terms = BondTerms(
        face_value=CONFIG.face_value,
        total_supply=CONFIG.total_supply,
        coupon_rate_bps=CONFIG.coupon_rate_bps,
        coupon_period_seconds=CONFIG.coupon_period_days * SECONDS_PER_DAY,
        maturity_period_seconds=CONFIG.maturity_years * SECONDS_PER_YEAR,
        name="Solar Park Green Bond",
        symbol="SOLAR27",
    )
    print(">>> bond = create_green_bond(terms, issuer='treasury')")
    bond = create_green_bond(terms, issuer=CONFIG.issuer)

    section_header("Bond Info")
    for key, value in bond.get_bond_info().items():
        print(f"  {key:<22} {value}")
    return bond


def step_02_roles(bond: GreenBond):
    step_header(2, "Roles",
        "The deployer is Admin and Issuer; verification needs a separate party.")

    print(f"treasury is ISSUER:  {bond.has_role(CONFIG.issuer, ISSUER_ROLE)}")
    print(f"auditor is VERIFIER: {bond.has_role(CONFIG.verifier, VERIFIER_ROLE)}")
    bond.grant_role(CONFIG.issuer, VERIFIER_ROLE, CONFIG.verifier)
    print(f"auditor is VERIFIER: {bond.has_role(CONFIG.verifier, VERIFIER_ROLE)}")

    section_header("Grant again")
    print(f"New grant? {bond.grant_role(CONFIG.issuer, VERIFIER_ROLE, CONFIG.verifier)}")
    return bond


def step_03_fund(bond: GreenBond):
    step_header(3, "Funding Investors",
        "Investors hold the settlement token and approve the bond's custody wallet.")

    token = bond.settlement.token
    custody = bond.settlement.custody_wallet
    for investor in ("alice", "bob"):
        token.mint(investor, CONFIG.investor_funds)
        token.approve(investor, custody, CONFIG.investor_funds)
    token.mint(custody, CONFIG.coupon_reserve)
    print(f"Issuer coupon reserve of {CONFIG.coupon_reserve} deposited in {custody}")
    show_balances(bond, "alice", "bob")
    return bond


# ============================================================================
# PHASE 2: COUPONS
# ============================================================================

def step_04_purchase(bond: GreenBond):
    step_header(4, "Purchasing Bonds",
        "Units leave available supply; face value moves into custody.")

    bond.purchase_bonds("alice", 2)
    bond.purchase_bonds("bob", 100)
    print(f"\nAvailable supply: {bond.available_supply}/{bond.total_supply}")
    show_balances(bond, "alice", "bob")
    return bond


def step_05_accrual(bond: GreenBond):
    step_header(5, "Whole-Period Accrual",
        "Coupon accrues only in complete periods since the last accrual point.")

    period = bond.coupon_period_seconds
    for label, seconds in (("+89 days", period - SECONDS_PER_DAY), ("+90 days", SECONDS_PER_DAY)):
        bond.clock.advance(seconds)
        print(f"{label}: alice can claim {bond.calculate_claimable_coupon('alice')}, "
              f"bob can claim {bond.calculate_claimable_coupon('bob')}")

    section_header("Projected schedule for alice")
    for timestamp, amount in bond.projected_coupon_schedule("alice", 4):
        print(f"  t={timestamp}  claimable={amount}")
    return bond


def step_06_claim(bond: GreenBond):
    step_header(6, "Claiming",
        "A claim pays every whole period and resets the accrual point.")

    bond.claim_coupon("alice")
    try:
        bond.claim_coupon("alice")
    except NoCouponAvailable as exc:
        print(f"Second claim: {exc}")

    section_header("Top-up forfeits unclaimed coupon")
    bond.clock.advance(bond.coupon_period_seconds)
    print(f"bob could claim {bond.calculate_claimable_coupon('bob')} before buying more")
    bond.purchase_bonds("bob", 10)
    print(f"bob can claim {bond.calculate_claimable_coupon('bob')} after the top-up")
    return bond


# ============================================================================
# PHASE 3: DISCLOSURE
# ============================================================================

def step_07_reports(bond: GreenBond):
    step_header(7, "Impact Disclosure",
        "The issuer publishes reports and certifications; they are never deleted.")

    bond.add_certification(CONFIG.issuer, "Climate Bonds Standard v4")
    bond.add_impact_report(
        CONFIG.issuer,
        "ipfs://QmSolarParkYear1",
        "0x9f2c4e",
        '{"mwh_generated": 48200, "co2_avoided_t": 21400}',
    )
    print(f"\nReport 0: {bond.get_impact_report(0)}")
    return bond


def step_08_verify(bond: GreenBond):
    step_header(8, "Third-Party Verification",
        "Only a Verifier can flip a report to verified, and only once.")

    try:
        bond.verify_impact_report(CONFIG.issuer, 0)
    except GreenBondError:
        pass
    bond.verify_impact_report(CONFIG.verifier, 0)
    try:
        bond.verify_impact_report(CONFIG.verifier, 0)
    except GreenBondError:
        pass
    print(f"\nReport 0 verified: {bond.get_impact_report(0).verified}")
    return bond


# ============================================================================
# PHASE 4: SAFETY
# ============================================================================

def step_09_rollback(bond: GreenBond):
    step_header(9, "Atomic Rollback",
        "A purchase that cannot be paid for leaves no trace.")

    before = (bond.available_supply, len(bond.event_log))
    try:
        bond.purchase_bonds("carol", 5)
    except GreenBondError:
        pass
    after = (bond.available_supply, len(bond.event_log))
    print(f"\n(supply, log length) before={before} after={after}")
    return bond


class CallbackToken(TokenLedger):
    """Token whose next outbound transfer calls back into the bond."""

    def __init__(self, symbol):
        super().__init__(symbol)
        self.callback = None

    def transfer(self, sender, to, amount):
        ok = super().transfer(sender, to, amount)
        callback, self.callback = self.callback, None
        if callback is not None:
            try:
                callback()
            except GreenBondError as exc:
                print(f"    re-entrant call refused: {type(exc).__name__}")
        return ok


def step_10_reentrancy():
    step_header(10, "Re-entrancy",
        "State is written before the payout, so a callback cannot claim twice.")

    token = CallbackToken("USDC")
    clock = ManualClock(1_700_000_000)
    bond = GreenBond(
        name="reentrancy",
        terms=BondTerms(1000, 100, 500, 90 * SECONDS_PER_DAY, SECONDS_PER_YEAR, symbol="RE"),
        settlement=TokenSettlement(token, "bond:RE"),
        clock=clock,
        deployer=CONFIG.issuer,
        verbose=False,
    )
    token.mint("mallory", 10_000)
    token.approve("mallory", "bond:RE", 10_000)
    token.mint("bond:RE", 10_000)
    bond.purchase_bonds("mallory", 2)
    clock.advance(90 * SECONDS_PER_DAY)

    token.callback = lambda: bond.claim_coupon("mallory")
    paid = bond.claim_coupon("mallory")
    print(f"\nmallory was paid {paid} exactly once")


# ============================================================================
# PHASE 5: MATURITY
# ============================================================================

def step_11_redeem(bond: GreenBond):
    step_header(11, "Redemption",
        "At maturity each holder receives principal plus outstanding coupon.")

    bond.clock.set(bond.maturity_timestamp)
    print(f"Matured: {bond.is_matured()}")
    for holder in list(bond.holders()):
        bond.redeem_bonds(holder)
    show_balances(bond, "alice", "bob")
    print(f"\nAvailable supply stays at {bond.available_supply}: redeemed units are retired")
    return bond


def step_12_withdraw(bond: GreenBond):
    step_header(12, "Emergency Withdrawal",
        "After the lock-up the issuer may sweep custody.")

    bond.emergency_withdraw(CONFIG.issuer, bond.custody_balance())
    show_balances(bond, CONFIG.issuer)

    section_header("Event Log")
    for note in bond.event_log:
        print(f"  #{note.sequence:<3} {note.kind}")
    print(f"\n{bond!r}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       GREEN BOND - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    bond = step_01_issue()
    wait_for_enter()
    for step in (step_02_roles, step_03_fund, step_04_purchase, step_05_accrual,
                 step_06_claim, step_07_reports, step_08_verify, step_09_rollback):
        bond = step(bond)
        wait_for_enter()

    step_10_reentrancy()
    wait_for_enter()

    bond = step_11_redeem(bond)
    wait_for_enter()
    step_12_withdraw(bond)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)


if __name__ == "__main__":
    main()
