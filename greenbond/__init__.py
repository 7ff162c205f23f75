"""
greenbond - Tokenized Green Bond Lifecycle

Issuance, purchase, periodic coupon accrual, redemption at maturity and
verification of environmental-impact disclosures, with all-or-nothing
execution of every mutating operation.

Usage:
    from greenbond import BondTerms, create_green_bond, SECONDS_PER_DAY, SECONDS_PER_YEAR

    bond = create_green_bond(BondTerms(
        face_value=1000,
        total_supply=1000,
        coupon_rate_bps=500,
        coupon_period_seconds=90 * SECONDS_PER_DAY,
        maturity_period_seconds=3 * SECONDS_PER_YEAR,
    ), issuer="treasury")

    # Fund and approve an investor on the settlement token
    usdc = bond.settlement.token
    usdc.mint("alice", 10_000)
    usdc.approve("alice", bond.settlement.custody_wallet, 10_000)

    bond.purchase_bonds("alice", 2)             # pays 2000
    bond.clock.advance(90 * SECONDS_PER_DAY)
    bond.claim_coupon("alice")                  # pays 24
"""

# Core types
from .core import (
    BondTerms,
    BondSeries,
    Holding,
    ImpactReport,
    Clock,
    SettlementAdapter,
    SupportsRollback,
    RoleSource,
    Notification,
    Listener,
    BondsPurchased,
    CouponClaimed,
    BondsRedeemed,
    ImpactReportAdded,
    ImpactReportVerified,
    CertificationAdded,
    EmergencyWithdrawal,
    RoleGranted,
    GreenBondError,
    TemporalError,
    ValidationError,
    EconomicError,
    SettlementError,
    AuthorizationError,
    BondMatured,
    BondNotMatured,
    TooEarlyForWithdrawal,
    InvalidBondAmount,
    InsufficientBondsAvailable,
    ReportDoesNotExist,
    ReportAlreadyVerified,
    CertificationDoesNotExist,
    NoCouponAvailable,
    NoBondsToRedeem,
    InsufficientFunds,
    PaymentFailed,
    AccessDenied,
    ArithmeticOverflow,
    EMPTY_HOLDING,
    SECONDS_PER_DAY,
    SECONDS_PER_YEAR,
    BPS_DENOMINATOR,
    EMERGENCY_WITHDRAWAL_DELAY,
    UINT256_MAX,
    ADMIN_ROLE,
    ISSUER_ROLE,
    VERIFIER_ROLE,
    ROLES,
)

# Coupon arithmetic
from .coupon import (
    calculate_elapsed_periods,
    calculate_bond_value,
    calculate_coupon_per_period,
    calculate_claimable_coupon,
    calculate_redemption_total,
    project_coupon_schedule,
)

# Collaborators
from .access import AccessPolicy, require_role
from .clock import ManualClock, SystemClock
from .settlement import TokenLedger, TokenSettlement, TransferRecord
from .impact import ImpactRegistry

# Bond
from .bond import GreenBond, create_green_bond, DEFAULT_START_TIME

__all__ = [
    # Core
    'BondTerms', 'BondSeries', 'Holding', 'ImpactReport',
    'Clock', 'SettlementAdapter', 'SupportsRollback', 'RoleSource',
    'Notification', 'Listener',
    'BondsPurchased', 'CouponClaimed', 'BondsRedeemed',
    'ImpactReportAdded', 'ImpactReportVerified', 'CertificationAdded',
    'EmergencyWithdrawal', 'RoleGranted',
    # Errors
    'GreenBondError', 'TemporalError', 'ValidationError', 'EconomicError',
    'SettlementError', 'AuthorizationError',
    'BondMatured', 'BondNotMatured', 'TooEarlyForWithdrawal',
    'InvalidBondAmount', 'InsufficientBondsAvailable',
    'ReportDoesNotExist', 'ReportAlreadyVerified', 'CertificationDoesNotExist',
    'NoCouponAvailable', 'NoBondsToRedeem', 'InsufficientFunds',
    'PaymentFailed', 'AccessDenied', 'ArithmeticOverflow',
    # Constants
    'EMPTY_HOLDING', 'SECONDS_PER_DAY', 'SECONDS_PER_YEAR', 'BPS_DENOMINATOR',
    'EMERGENCY_WITHDRAWAL_DELAY', 'UINT256_MAX',
    'ADMIN_ROLE', 'ISSUER_ROLE', 'VERIFIER_ROLE', 'ROLES',
    # Coupon
    'calculate_elapsed_periods', 'calculate_bond_value', 'calculate_coupon_per_period',
    'calculate_claimable_coupon', 'calculate_redemption_total', 'project_coupon_schedule',
    # Collaborators
    'AccessPolicy', 'require_role', 'ManualClock', 'SystemClock',
    'TokenLedger', 'TokenSettlement', 'TransferRecord', 'ImpactRegistry',
    # Bond
    'GreenBond', 'create_green_bond', 'DEFAULT_START_TIME',
]

__version__ = '1.0.0'
