"""
Core types and constants for the green bond system.

This module provides the foundational data structures and protocols:
1. Protocols: Clock, SettlementAdapter, RoleSource for external collaborators
2. Immutable data structures: BondTerms, BondSeries, Holding, ImpactReport
3. Notifications: immutable records of each completed state transition
4. Exceptions: GreenBondError and the typed failure taxonomy
5. Checked uint256 arithmetic helpers

Nothing in this module mutates bond state. The GreenBond aggregate in
bond.py is the only place that does.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

SECONDS_PER_DAY = 86_400

# Coupon accrual uses a fixed 365-day year regardless of leap years.
SECONDS_PER_YEAR = 365 * SECONDS_PER_DAY

# 1bp = 0.01%
BPS_DENOMINATOR = 10_000

# Issuer escape valve unlocks this long after deployment.
EMERGENCY_WITHDRAWAL_DELAY = 30 * SECONDS_PER_DAY

# All unsigned quantities live in the hosting VM's word size.
UINT256_MAX = 2 ** 256 - 1

# Role names (strings, not enum, matching unit type constants).
ADMIN_ROLE = "ADMIN"
ISSUER_ROLE = "ISSUER"
VERIFIER_ROLE = "VERIFIER"
ROLES = frozenset({ADMIN_ROLE, ISSUER_ROLE, VERIFIER_ROLE})


# ============================================================================
# EXCEPTIONS
# ============================================================================

class GreenBondError(Exception):
    """Base exception for all green bond errors."""
    pass


class TemporalError(GreenBondError):
    """Operation attempted at the wrong point in the bond's life."""
    pass


class ValidationError(GreenBondError):
    """Operation arguments are inconsistent with current state."""
    pass


class EconomicError(GreenBondError):
    """Nothing of value is available for the requested operation."""
    pass


class SettlementError(GreenBondError):
    """The settlement asset refused a transfer."""
    pass


class AuthorizationError(GreenBondError):
    """Caller lacks the role required for the operation."""
    pass


class BondMatured(TemporalError):
    """Raised when purchasing at or after maturity."""
    pass


class BondNotMatured(TemporalError):
    """Raised when redeeming before maturity."""
    pass


class TooEarlyForWithdrawal(TemporalError):
    """Raised when an emergency withdrawal is attempted inside the lock period."""
    pass


class InvalidBondAmount(ValidationError):
    """Raised when purchasing zero units."""
    pass


class InsufficientBondsAvailable(ValidationError):
    """Raised when purchasing more units than remain available."""
    pass


class ReportDoesNotExist(ValidationError):
    """Raised when an impact report index is out of range."""
    pass


class CertificationDoesNotExist(ValidationError):
    """Raised when a certification index is out of range."""
    pass


class ReportAlreadyVerified(ValidationError):
    """Raised when verifying a report a second time."""
    pass


class NoCouponAvailable(EconomicError):
    """Raised when claiming with nothing accrued."""
    pass


class NoBondsToRedeem(EconomicError):
    """Raised when redeeming with no units held."""
    pass


class InsufficientFunds(EconomicError):
    """Raised when withdrawing more than the custodied settlement balance."""
    pass


class PaymentFailed(SettlementError):
    """Raised when a pull or push on the settlement asset does not succeed."""
    pass


class AccessDenied(AuthorizationError):
    """Raised when the caller does not hold the required role."""
    pass


class ArithmeticOverflow(GreenBondError):
    """Raised when an unsigned quantity leaves the uint256 range."""
    pass


# ============================================================================
# CHECKED ARITHMETIC
# ============================================================================

def require_uint(name: str, value: Any) -> int:
    """
    Validate an externally supplied unsigned integer.

    Raises:
        ValueError: If value is not an int (bools rejected), is negative,
                    or exceeds UINT256_MAX.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    if value > UINT256_MAX:
        raise ValueError(f"{name} exceeds uint256 range")
    return value


def checked_add(a: int, b: int) -> int:
    result = a + b
    if result > UINT256_MAX:
        raise ArithmeticOverflow(f"{a} + {b} overflows uint256")
    return result


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise ArithmeticOverflow(f"{a} - {b} underflows uint256")
    return a - b


def checked_mul(a: int, b: int) -> int:
    result = a * b
    if result > UINT256_MAX:
        raise ArithmeticOverflow(f"{a} * {b} overflows uint256")
    return result


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class Clock(Protocol):
    """Authoritative, monotonically non-decreasing time source (unix seconds)."""

    def now(self) -> int:
        ...


@runtime_checkable
class SettlementAdapter(Protocol):
    """
    Call-through to the external settlement asset.

    pull() moves value from a payer into the bond's custody, push() moves
    value out of custody. Both report success as a boolean; anything other
    than a literal True is treated as a failure by the caller.
    """

    def pull(self, source: str, amount: int) -> bool:
        ...

    def push(self, dest: str, amount: int) -> bool:
        ...

    def balance(self) -> int:
        """Settlement-asset balance currently held in custody."""
        ...


@runtime_checkable
class SupportsRollback(Protocol):
    """
    Settlement collaborator that can undo its own transfers.

    rollback(checkpoint) reverses only the transfers this adapter initiated
    after checkpoint() was taken. Activity by other parties on the shared
    asset is left alone.
    """

    def checkpoint(self) -> Any:
        ...

    def rollback(self, checkpoint: Any) -> None:
        ...


@runtime_checkable
class RoleSource(Protocol):
    """Identity/permission registry resolving who may act in which role."""

    def has_role(self, identity: str, role: str) -> bool:
        ...

    def grant_role(self, role: str, account: str) -> bool:
        """Add account to role. Returns True if the membership is new."""
        ...


# ============================================================================
# TERM SHEET AND STATE
# ============================================================================

@dataclass(frozen=True, slots=True)
class BondTerms:
    """
    Immutable term sheet supplied at issuance.

    Attributes:
        face_value: Settlement units owed per bond unit at redemption
        total_supply: Number of bond units issued
        coupon_rate_bps: Annualized coupon rate in basis points
        coupon_period_seconds: Accrual granularity (must be > 0)
        maturity_period_seconds: Time from issuance to maturity
        name: Human-readable series name
        symbol: Short identifier
    """
    face_value: int
    total_supply: int
    coupon_rate_bps: int
    coupon_period_seconds: int
    maturity_period_seconds: int
    name: str = "Green Bond"
    symbol: str = "GBOND"

    def __post_init__(self):
        for attr in ('face_value', 'total_supply', 'coupon_rate_bps',
                     'coupon_period_seconds', 'maturity_period_seconds'):
            require_uint(attr, getattr(self, attr))
        if self.face_value == 0:
            raise ValueError("face_value must be positive")
        if self.total_supply == 0:
            raise ValueError("total_supply must be positive")
        # Division by the period happens on every accrual.
        if self.coupon_period_seconds == 0:
            raise ValueError("coupon_period_seconds must be positive")
        if self.maturity_period_seconds == 0:
            raise ValueError("maturity_period_seconds must be positive")
        if not self.symbol or not self.symbol.strip():
            raise ValueError("symbol cannot be empty")


@dataclass(frozen=True, slots=True)
class BondSeries:
    """
    Economic state of the bond series.

    Only available_supply changes after issuance; a new instance replaces the
    old one on every purchase.
    """
    face_value: int
    total_supply: int
    available_supply: int
    coupon_rate_bps: int
    coupon_period_seconds: int
    issuance_timestamp: int
    maturity_timestamp: int

    def __post_init__(self):
        if self.available_supply > self.total_supply:
            raise ValueError(
                f"available_supply {self.available_supply} exceeds total_supply {self.total_supply}"
            )

    @classmethod
    def issue(cls, terms: BondTerms, issuance_timestamp: int) -> BondSeries:
        """Create the series for terms issued at issuance_timestamp."""
        require_uint('issuance_timestamp', issuance_timestamp)
        return cls(
            face_value=terms.face_value,
            total_supply=terms.total_supply,
            available_supply=terms.total_supply,
            coupon_rate_bps=terms.coupon_rate_bps,
            coupon_period_seconds=terms.coupon_period_seconds,
            issuance_timestamp=issuance_timestamp,
            maturity_timestamp=checked_add(issuance_timestamp, terms.maturity_period_seconds),
        )


@dataclass(frozen=True, slots=True)
class Holding:
    """
    A holder's position.

    last_accrual_timestamp == 0 means never purchased or fully redeemed.
    """
    units: int = 0
    last_accrual_timestamp: int = 0

    @property
    def is_empty(self) -> bool:
        return self.units == 0


EMPTY_HOLDING = Holding()


@dataclass(frozen=True, slots=True)
class ImpactReport:
    """An environmental-impact disclosure. verified flips to True exactly once."""
    uri: str
    content_hash: str
    summary_metrics: str
    created_at: int
    verified: bool = False


# ============================================================================
# NOTIFICATIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Notification:
    """
    Immutable record of a completed transition.

    sequence is monotonic within one GreenBond; timestamp is the clock
    reading the transition ran at.
    """
    sequence: int
    timestamp: int

    @property
    def kind(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, slots=True)
class BondsPurchased(Notification):
    buyer: str = ""
    units: int = 0
    cost: int = 0


@dataclass(frozen=True, slots=True)
class CouponClaimed(Notification):
    holder: str = ""
    amount: int = 0


@dataclass(frozen=True, slots=True)
class BondsRedeemed(Notification):
    holder: str = ""
    units: int = 0
    total: int = 0


@dataclass(frozen=True, slots=True)
class ImpactReportAdded(Notification):
    index: int = 0
    uri: str = ""
    content_hash: str = ""


@dataclass(frozen=True, slots=True)
class ImpactReportVerified(Notification):
    index: int = 0
    verifier: str = ""


@dataclass(frozen=True, slots=True)
class CertificationAdded(Notification):
    index: int = 0
    certification: str = ""


@dataclass(frozen=True, slots=True)
class EmergencyWithdrawal(Notification):
    issuer: str = ""
    amount: int = 0


@dataclass(frozen=True, slots=True)
class RoleGranted(Notification):
    role: str = ""
    account: str = ""
    sender: str = ""


# Subscribers receive each notification after its transition commits.
Listener = Callable[[Notification], None]
