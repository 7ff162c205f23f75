"""
Coupon Accrual Conformance Tests

INVARIANT: Coupon accrues in whole periods from the last accrual point.

    claimable(h, t) = per_period(units) × ⌊(t − last_accrual) / period⌋

    - claimable is non-decreasing in t between accrual resets
    - a claim or purchase resets accrual to now (claimable becomes 0)
    - claiming early never yields more than claiming once later
"""

from hypothesis import given, settings, assume
from hypothesis import strategies as st

from greenbond import (
    BondSeries, Holding, NoCouponAvailable, create_green_bond,
    calculate_claimable_coupon, calculate_coupon_per_period,
    BPS_DENOMINATOR, SECONDS_PER_DAY, SECONDS_PER_YEAR,
)
from tests.builders import QUARTER, ISSUER, standard_terms, fund_investor, fund_custody


ISSUED_AT = 1_700_000_000


# =============================================================================
# STRATEGIES
# =============================================================================

@st.composite
def bond_series(draw):
    """Arbitrary well-formed series issued at ISSUED_AT."""
    terms = standard_terms(
        face_value=draw(st.integers(min_value=1, max_value=10 ** 9)),
        total_supply=draw(st.integers(min_value=1, max_value=10 ** 6)),
        coupon_rate_bps=draw(st.integers(min_value=0, max_value=20_000)),
        coupon_period_seconds=draw(st.integers(min_value=1, max_value=SECONDS_PER_YEAR)),
        maturity_period_seconds=draw(st.integers(min_value=1, max_value=10 * SECONDS_PER_YEAR)),
    )
    return BondSeries.issue(terms, ISSUED_AT)


# =============================================================================
# PURE CALCULATION PROPERTIES
# =============================================================================

class TestAccrualFormula:

    @given(bond_series(), st.integers(min_value=1, max_value=10 ** 6),
           st.integers(min_value=0, max_value=20 * SECONDS_PER_YEAR))
    @settings(max_examples=200)
    def test_matches_stepwise_floor_formula(self, series, units, elapsed):
        holding = Holding(units=units, last_accrual_timestamp=ISSUED_AT)
        periods = elapsed // series.coupon_period_seconds
        annual = units * series.face_value * series.coupon_rate_bps // BPS_DENOMINATOR
        per_period = annual * series.coupon_period_seconds // SECONDS_PER_YEAR

        assert calculate_claimable_coupon(series, holding, ISSUED_AT + elapsed) == per_period * periods

    @given(bond_series(), st.integers(min_value=1, max_value=10 ** 6),
           st.integers(min_value=0, max_value=10 * SECONDS_PER_YEAR),
           st.integers(min_value=0, max_value=10 * SECONDS_PER_YEAR))
    @settings(max_examples=200)
    def test_non_decreasing_in_time(self, series, units, t1, t2):
        assume(t1 <= t2)
        holding = Holding(units=units, last_accrual_timestamp=ISSUED_AT)
        early = calculate_claimable_coupon(series, holding, ISSUED_AT + t1)
        late = calculate_claimable_coupon(series, holding, ISSUED_AT + t2)
        assert early <= late

    @given(bond_series(), st.integers(min_value=1, max_value=10 ** 6))
    @settings(max_examples=100)
    def test_never_exceeds_exact_rate(self, series, units):
        """Rounding only ever favors the issuer."""
        per_period = calculate_coupon_per_period(series, units)
        exact_numerator = (units * series.face_value * series.coupon_rate_bps
                           * series.coupon_period_seconds)
        assert per_period * BPS_DENOMINATOR * SECONDS_PER_YEAR <= exact_numerator

    @given(bond_series(), st.integers(min_value=0, max_value=10 * SECONDS_PER_YEAR))
    def test_empty_holding_accrues_nothing(self, series, elapsed):
        assert calculate_claimable_coupon(series, Holding(), ISSUED_AT + elapsed) == 0
        assert calculate_claimable_coupon(
            series, Holding(units=5, last_accrual_timestamp=0), ISSUED_AT + elapsed
        ) == 0


# =============================================================================
# STATEFUL PROPERTIES
# =============================================================================

def accruing_bond():
    bond = create_green_bond(standard_terms(), issuer=ISSUER, verbose=False)
    fund_investor(bond, "alice")
    fund_custody(bond, 1_000_000)
    return bond


class TestAccrualResets:

    @given(st.lists(st.integers(min_value=1, max_value=200 * SECONDS_PER_DAY), min_size=1, max_size=10))
    @settings(max_examples=60, deadline=None)
    def test_early_claims_never_beat_one_late_claim(self, gaps):
        """PROPERTY: Claiming at intermediate points forfeits partial periods, never gains."""
        eager = accruing_bond()
        patient = accruing_bond()
        eager.purchase_bonds("alice", 10)
        patient.purchase_bonds("alice", 10)

        collected = 0
        for gap in gaps:
            eager.clock.advance(gap)
            try:
                collected += eager.claim_coupon("alice")
            except NoCouponAvailable:
                pass

        patient.clock.advance(sum(gaps))
        once = patient.calculate_claimable_coupon("alice")
        assert collected <= once

    @given(st.integers(min_value=QUARTER, max_value=5 * QUARTER))
    @settings(max_examples=30, deadline=None)
    def test_claim_resets_to_zero(self, elapsed):
        bond = accruing_bond()
        bond.purchase_bonds("alice", 2)
        bond.clock.advance(elapsed)

        paid = bond.claim_coupon("alice")
        assert paid == 24 * (elapsed // QUARTER)
        assert bond.calculate_claimable_coupon("alice") == 0
        assert bond.get_holding("alice").last_accrual_timestamp == bond.clock.now()

    @given(st.integers(min_value=QUARTER, max_value=5 * QUARTER))
    @settings(max_examples=30, deadline=None)
    def test_top_up_purchase_forfeits_accrual(self, elapsed):
        bond = accruing_bond()
        bond.purchase_bonds("alice", 2)
        bond.clock.advance(elapsed)
        assert bond.calculate_claimable_coupon("alice") > 0

        bond.purchase_bonds("alice", 1)
        assert bond.calculate_claimable_coupon("alice") == 0
        bond.clock.advance(QUARTER)
        assert bond.calculate_claimable_coupon("alice") == 36
