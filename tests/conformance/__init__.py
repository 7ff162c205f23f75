"""
Conformance Test Suite

Normative behavior of the green bond state machine. Organized by invariant:
1. test_atomicity.py - All-or-nothing operations
2. test_reentrancy.py - Checks-effects-interactions under collaborator re-entry
3. test_supply.py - Supply accounting bounds
4. test_accrual.py - Coupon accrual monotonicity and reset

These tests use hypothesis for property-based testing.
"""
