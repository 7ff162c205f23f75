"""
test_coupon.py - Unit tests for coupon accrual arithmetic (pure functions)

Tests:
- calculate_claimable_coupon: zero cases, period boundaries, exact values
- Step ordering: floor at each division, per-period then multiply
- calculate_redemption_total
- project_coupon_schedule
- Overflow detection
"""

import pytest

from greenbond import (
    BondSeries, Holding, EMPTY_HOLDING,
    calculate_elapsed_periods,
    calculate_bond_value,
    calculate_coupon_per_period,
    calculate_claimable_coupon,
    calculate_redemption_total,
    project_coupon_schedule,
    ArithmeticOverflow, UINT256_MAX, SECONDS_PER_YEAR,
)
from tests.builders import standard_terms, QUARTER


T0 = 1_700_000_000


@pytest.fixture
def series():
    return BondSeries.issue(standard_terms(), T0)


def holding(units, at=T0):
    return Holding(units=units, last_accrual_timestamp=at)


# ============================================================================
# ZERO CASES
# ============================================================================

class TestNothingClaimable:

    def test_empty_holding(self, series):
        assert calculate_claimable_coupon(series, EMPTY_HOLDING, T0 + 10 * QUARTER) == 0

    def test_units_without_accrual_point(self, series):
        """A zero accrual timestamp is the 'no position' sentinel."""
        assert calculate_claimable_coupon(series, Holding(5, 0), T0 + 10 * QUARTER) == 0

    def test_no_time_elapsed(self, series):
        assert calculate_claimable_coupon(series, holding(2), T0) == 0

    def test_one_second_short_of_a_period(self, series):
        assert calculate_claimable_coupon(series, holding(2), T0 + QUARTER - 1) == 0

    def test_zero_coupon_rate(self):
        zero = BondSeries.issue(standard_terms(coupon_rate_bps=0), T0)
        assert calculate_claimable_coupon(zero, holding(100), T0 + 4 * QUARTER) == 0


# ============================================================================
# EXACT VALUES
# ============================================================================

class TestClaimableAmounts:

    def test_reference_example_one_period(self, series):
        """2 units x 1000 at 500bps for 90 of 365 days: 2000*500//10000 = 100, 100*7776000//31536000 = 24."""
        assert calculate_claimable_coupon(series, holding(2), T0 + QUARTER) == 24

    def test_single_unit(self, series):
        # 50 * 7776000 // 31536000 = 12
        assert calculate_claimable_coupon(series, holding(1), T0 + QUARTER) == 12

    def test_hundred_units(self, series):
        # 5000 * 7776000 // 31536000 = 1232
        assert calculate_claimable_coupon(series, holding(100), T0 + QUARTER) == 1232

    def test_partial_period_is_floored(self, series):
        assert calculate_claimable_coupon(series, holding(2), T0 + 2 * QUARTER - 1) == 24

    def test_multiple_periods_multiply_rounded_per_period(self, series):
        """Three periods pay 3 x 24 = 72, not floor(100 * 3 * 7776000 / 31536000) = 73."""
        assert calculate_claimable_coupon(series, holding(2), T0 + 3 * QUARTER) == 72

    def test_annual_coupon_floored_before_period_split(self):
        """bond_value * bps // 10000 is floored before scaling by the period."""
        odd = BondSeries.issue(standard_terms(face_value=3, coupon_rate_bps=333), T0)
        # bond_value=3, annual=3*333//10000=0 -> nothing ever accrues
        assert calculate_claimable_coupon(odd, holding(1), T0 + 40 * QUARTER) == 0

    def test_full_year_period(self):
        yearly = BondSeries.issue(standard_terms(coupon_period_seconds=SECONDS_PER_YEAR), T0)
        # per period is the whole annual coupon
        assert calculate_claimable_coupon(yearly, holding(2), T0 + SECONDS_PER_YEAR) == 100

    def test_accrual_continues_past_maturity(self, series):
        """Accrual is not capped at maturity."""
        late = series.maturity_timestamp + 4 * QUARTER
        periods = (late - T0) // QUARTER
        assert calculate_claimable_coupon(series, holding(2), late) == 24 * periods


# ============================================================================
# BUILDING BLOCKS
# ============================================================================

class TestBuildingBlocks:

    def test_elapsed_periods(self, series):
        assert calculate_elapsed_periods(series, holding(1), T0 + 5 * QUARTER + 7) == 5

    def test_bond_value(self, series):
        assert calculate_bond_value(series, 7) == 7000

    def test_coupon_per_period(self, series):
        assert calculate_coupon_per_period(series, 2) == 24

    def test_redemption_total_principal_only(self, series):
        assert calculate_redemption_total(series, holding(2), T0 + 10) == 2000

    def test_redemption_total_with_coupon(self, series):
        assert calculate_redemption_total(series, holding(2), T0 + 2 * QUARTER) == 2048

    def test_clock_before_accrual_point_underflows(self, series):
        with pytest.raises(ArithmeticOverflow):
            calculate_claimable_coupon(series, holding(2), T0 - 1)

    def test_bond_value_overflow(self):
        huge = BondSeries.issue(standard_terms(face_value=UINT256_MAX), T0)
        with pytest.raises(ArithmeticOverflow):
            calculate_bond_value(huge, 2)


# ============================================================================
# PROJECTION
# ============================================================================

class TestProjectCouponSchedule:

    def test_projection_from_accrual_point(self, series):
        schedule = project_coupon_schedule(series, holding(2), T0, 3)
        assert schedule == [
            (T0 + QUARTER, 24),
            (T0 + 2 * QUARTER, 48),
            (T0 + 3 * QUARTER, 72),
        ]

    def test_projection_skips_elapsed_periods(self, series):
        schedule = project_coupon_schedule(series, holding(2), T0 + QUARTER + 5, 2)
        assert schedule == [(T0 + 2 * QUARTER, 48), (T0 + 3 * QUARTER, 72)]

    def test_projection_empty_holding(self, series):
        assert project_coupon_schedule(series, EMPTY_HOLDING, T0, 4) == []

    def test_zero_periods(self, series):
        assert project_coupon_schedule(series, holding(2), T0, 0) == []

    def test_negative_periods_rejected(self, series):
        with pytest.raises(ValueError, match="periods must be non-negative"):
            project_coupon_schedule(series, holding(2), T0, -1)
