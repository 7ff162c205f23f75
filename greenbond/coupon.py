"""
coupon.py - Coupon accrual and settlement arithmetic

Pure calculation functions. All inputs are explicit (series, holding, now);
nothing here touches a GreenBond instance, so every function is trivially
testable in isolation.

Key Formulas (unsigned integers, floor division at each step, in this order):
    periods       = (now - last_accrual) // coupon_period
    bond_value    = units * face_value
    annual_coupon = bond_value * coupon_rate_bps // 10000
    per_period    = annual_coupon * coupon_period // SECONDS_PER_YEAR
    claimable     = per_period * periods

Reordering the multiplications and divisions changes the rounding, so the
order above is part of the contract.
"""

from __future__ import annotations
from typing import List

from .core import (
    BondSeries, Holding,
    BPS_DENOMINATOR, SECONDS_PER_YEAR,
    checked_add, checked_mul, checked_sub,
)


def calculate_elapsed_periods(series: BondSeries, holding: Holding, now: int) -> int:
    """Whole coupon periods since the holder's last accrual point."""
    if holding.units == 0 or holding.last_accrual_timestamp == 0:
        return 0
    elapsed = checked_sub(now, holding.last_accrual_timestamp)
    return elapsed // series.coupon_period_seconds


def calculate_bond_value(series: BondSeries, units: int) -> int:
    """Face value owed on units bonds."""
    return checked_mul(units, series.face_value)


def calculate_coupon_per_period(series: BondSeries, units: int) -> int:
    """Coupon paid on units bonds for one full period."""
    bond_value = calculate_bond_value(series, units)
    annual_coupon = checked_mul(bond_value, series.coupon_rate_bps) // BPS_DENOMINATOR
    return checked_mul(annual_coupon, series.coupon_period_seconds) // SECONDS_PER_YEAR


def calculate_claimable_coupon(series: BondSeries, holding: Holding, now: int) -> int:
    """
    Coupon the holder could claim at time now.

    Returns 0 for an empty holding, a holding with no accrual timestamp, or
    when less than one full period has elapsed.
    """
    periods = calculate_elapsed_periods(series, holding, now)
    if periods == 0:
        return 0
    per_period = calculate_coupon_per_period(series, holding.units)
    return checked_mul(per_period, periods)


def calculate_redemption_total(series: BondSeries, holding: Holding, now: int) -> int:
    """Principal plus outstanding coupon paid out on redemption."""
    principal = calculate_bond_value(series, holding.units)
    coupon = calculate_claimable_coupon(series, holding, now)
    return checked_add(principal, coupon)


def project_coupon_schedule(
    series: BondSeries,
    holding: Holding,
    now: int,
    periods: int,
) -> List[tuple]:
    """
    Claimable coupon at each of the next `periods` period boundaries.

    Boundaries are measured from the holding's last accrual point, so the
    projection assumes nothing is claimed or purchased in between.

    Returns:
        List of (timestamp, claimable_amount) tuples in time order.
    """
    if periods < 0:
        raise ValueError(f"periods must be non-negative, got {periods}")
    if holding.units == 0 or holding.last_accrual_timestamp == 0:
        return []

    step = series.coupon_period_seconds
    start = holding.last_accrual_timestamp
    done = calculate_elapsed_periods(series, holding, now)

    schedule = []
    for n in range(done + 1, done + 1 + periods):
        boundary = checked_add(start, checked_mul(n, step))
        schedule.append((boundary, calculate_claimable_coupon(series, holding, boundary)))
    return schedule
