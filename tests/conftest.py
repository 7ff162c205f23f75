"""
conftest.py - Shared pytest fixtures for green bond tests

Provides common fixtures used across unit, functional and conformance tests:
- Standard term sheet (1000 face, 5%, 90-day periods, 3 years)
- Bonds wired to the in-memory token ledger, funded investors
- A bond with a registered verifier
"""

import pytest

from greenbond import create_green_bond, VERIFIER_ROLE

from tests.builders import ISSUER, VERIFIER, standard_terms, fund_investor


@pytest.fixture
def terms():
    return standard_terms()


@pytest.fixture
def bond(terms):
    """Freshly issued bond, no investors."""
    return create_green_bond(terms, issuer=ISSUER, verbose=False)


@pytest.fixture
def funded_bond(bond):
    """Bond with alice and bob funded and approved on the settlement token."""
    fund_investor(bond, "alice")
    fund_investor(bond, "bob")
    return bond


@pytest.fixture
def verified_bond(funded_bond):
    """Funded bond with a verifier registered by the admin."""
    funded_bond.grant_role(ISSUER, VERIFIER_ROLE, VERIFIER)
    return funded_bond
