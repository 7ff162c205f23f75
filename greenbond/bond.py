"""
bond.py - The green bond state machine

The GreenBond class is the central state manager. It is the only module that
mutates bond state, ensuring controlled and auditable changes.

Key responsibilities:
    - Purchase accounting, coupon accrual and claims, redemption at maturity
    - Role-gated impact-report and certification registry
    - Issuer emergency withdrawal against the custodied settlement balance
    - Executes every mutating operation atomically: state, settlement call and
      notification all happen, or none of them do
    - Records every completed transition in event_log

Ordering discipline (checks-effects-interactions):
    1. Access and invariant checks
    2. Internal bookkeeping written to state
    3. The single settlement call
    4. Notification

Because step 2 completes before step 3, a settlement collaborator that calls
back into the bond sees the finished transition and cannot double-claim,
double-redeem or oversell.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple
import threading

from .core import (
    # Types
    BondTerms, BondSeries, Holding, ImpactReport,
    Clock, SettlementAdapter, RoleSource, SupportsRollback,
    Notification, Listener,
    BondsPurchased, CouponClaimed, BondsRedeemed,
    ImpactReportAdded, ImpactReportVerified, CertificationAdded,
    EmergencyWithdrawal, RoleGranted,
    # Constants
    EMPTY_HOLDING, EMERGENCY_WITHDRAWAL_DELAY,
    ADMIN_ROLE, ISSUER_ROLE, VERIFIER_ROLE,
    # Exceptions
    BondMatured, BondNotMatured, TooEarlyForWithdrawal,
    InvalidBondAmount, InsufficientBondsAvailable,
    NoCouponAvailable, NoBondsToRedeem, InsufficientFunds,
    PaymentFailed,
    # Helpers
    require_uint, checked_add, checked_sub,
)
from .access import AccessPolicy, require_role
from .clock import ManualClock
from .coupon import (
    calculate_bond_value,
    calculate_claimable_coupon,
    calculate_redemption_total,
    project_coupon_schedule,
)
from .impact import ImpactRegistry
from .settlement import TokenLedger, TokenSettlement


# Default simulation start: 2023-11-14T22:13:20Z
DEFAULT_START_TIME = 1_700_000_000


def _require_identity(name: str, identity: str) -> str:
    if not isinstance(identity, str) or not identity.strip():
        raise ValueError(f"{name} cannot be empty")
    return identity


class GreenBond:
    """
    A single green bond series with its holders and impact registry.

    Thread Safety:
        Mutating operations are serialized behind a re-entrant lock. Re-entry
        from the same thread (a settlement collaborator calling back in) is
        allowed and observes already-committed bookkeeping.

    Example:
        bond = create_green_bond(BondTerms(
            face_value=1000, total_supply=1000, coupon_rate_bps=500,
            coupon_period_seconds=90 * SECONDS_PER_DAY,
            maturity_period_seconds=3 * SECONDS_PER_YEAR,
        ), issuer="treasury")
        token = bond.settlement.token
        token.mint("alice", 10_000)
        token.approve("alice", bond.settlement.custody_wallet, 10_000)
        bond.purchase_bonds("alice", 2)
    """

    def __init__(
        self,
        name: str,
        terms: BondTerms,
        settlement: SettlementAdapter,
        clock: Clock,
        deployer: str,
        roles: Optional[RoleSource] = None,
        verbose: bool = True,
        withdrawal_delay: int = EMERGENCY_WITHDRAWAL_DELAY,
    ):
        """
        Issue a bond series.

        Args:
            name: Identifier used in status output
            terms: Term sheet for the series
            settlement: Adapter to the settlement asset
            clock: Authoritative time source; issuance time is read from it once
            deployer: Identity bootstrapped with ADMIN and ISSUER
            roles: Role registry (a fresh AccessPolicy if not provided)
            verbose: Print a status line for every operation (default: True)
            withdrawal_delay: Seconds after issuance before emergency withdrawal unlocks
        """
        if not isinstance(terms, BondTerms):
            raise ValueError(f"terms must be BondTerms, got {type(terms).__name__}")
        _require_identity('deployer', deployer)
        require_uint('withdrawal_delay', withdrawal_delay)

        issued_at = clock.now()
        # Zero is the holding sentinel for "no accrual point".
        if issued_at <= 0:
            raise ValueError(f"clock must report a positive timestamp, got {issued_at}")

        self.name = name
        self.terms = terms
        self.settlement = settlement
        self.clock = clock
        self.roles: RoleSource = roles if roles is not None else AccessPolicy()
        self.deployer = deployer
        self.verbose = verbose
        self.withdrawal_delay = withdrawal_delay

        self._series = BondSeries.issue(terms, issued_at)
        self._holdings: Dict[str, Holding] = {}
        self.registry = ImpactRegistry()
        self.event_log: List[Notification] = []

        self._listeners: List[Listener] = []
        # (notification, listener, exception) for every listener that raised
        self.delivery_failures: List[Tuple[Notification, Listener, Exception]] = []
        self._outbox: List[Notification] = []
        self._next_sequence = 0
        self._depth = 0
        self._lock = threading.RLock()

        for role in (ADMIN_ROLE, ISSUER_ROLE):
            if self.roles.grant_role(role, deployer):
                self._emit(RoleGranted, issued_at, role=role, account=deployer, sender=deployer)
        self._outbox.clear()

        if self.verbose:
            print(f"📝 Issued: {terms.symbol} ({terms.name}) supply={terms.total_supply} "
                  f"face={terms.face_value} rate={terms.coupon_rate_bps}bps "
                  f"matures={self._series.maturity_timestamp}")

    # ========================================================================
    # READ ACCESSORS
    # ========================================================================

    @property
    def series(self) -> BondSeries:
        return self._series

    @property
    def face_value(self) -> int:
        return self._series.face_value

    @property
    def total_supply(self) -> int:
        return self._series.total_supply

    @property
    def available_supply(self) -> int:
        return self._series.available_supply

    @property
    def coupon_rate_bps(self) -> int:
        return self._series.coupon_rate_bps

    @property
    def coupon_period_seconds(self) -> int:
        return self._series.coupon_period_seconds

    @property
    def issuance_timestamp(self) -> int:
        return self._series.issuance_timestamp

    @property
    def maturity_timestamp(self) -> int:
        return self._series.maturity_timestamp

    @property
    def withdrawal_unlock_timestamp(self) -> int:
        return checked_add(self._series.issuance_timestamp, self.withdrawal_delay)

    def is_matured(self) -> bool:
        return self.clock.now() >= self._series.maturity_timestamp

    def get_holding(self, holder: str) -> Holding:
        """Holder's position (an empty Holding if they never bought or redeemed)."""
        return self._holdings.get(holder, EMPTY_HOLDING)

    def balance_of(self, holder: str) -> int:
        return self.get_holding(holder).units

    def holders(self) -> Dict[str, Holding]:
        """All non-empty positions."""
        return {h: holding for h, holding in self._holdings.items() if holding.units > 0}

    def outstanding_units(self) -> int:
        """Units sold and not yet redeemed."""
        return sum(h.units for h in self._holdings.values())

    def get_impact_report(self, index: int) -> ImpactReport:
        return self.registry.get_report(index)

    @property
    def impact_report_count(self) -> int:
        return self.registry.report_count

    def impact_reports(self) -> Tuple[ImpactReport, ...]:
        return self.registry.reports()

    def get_certification(self, index: int) -> str:
        return self.registry.get_certification(index)

    @property
    def certification_count(self) -> int:
        return self.registry.certification_count

    def custody_balance(self) -> int:
        """Settlement asset held by the bond."""
        return self.settlement.balance()

    def calculate_claimable_coupon(self, holder: str) -> int:
        """Coupon holder could claim right now. Pure read."""
        return calculate_claimable_coupon(self._series, self.get_holding(holder), self.clock.now())

    def projected_coupon_schedule(self, holder: str, periods: int) -> List[tuple]:
        """Claimable amounts at the holder's next `periods` period boundaries."""
        return project_coupon_schedule(
            self._series, self.get_holding(holder), self.clock.now(), periods
        )

    def get_bond_info(self) -> Dict[str, Any]:
        """Summary of the series for display and reconciliation."""
        series = self._series
        return {
            'name': self.name,
            'symbol': self.terms.symbol,
            'face_value': series.face_value,
            'total_supply': series.total_supply,
            'available_supply': series.available_supply,
            'outstanding_units': self.outstanding_units(),
            'coupon_rate_bps': series.coupon_rate_bps,
            'coupon_period_seconds': series.coupon_period_seconds,
            'issuance_timestamp': series.issuance_timestamp,
            'maturity_timestamp': series.maturity_timestamp,
            'matured': self.is_matured(),
            'custody_balance': self.custody_balance(),
            'impact_reports': self.registry.report_count,
            'verified_reports': sum(1 for r in self.registry.reports() if r.verified),
            'certifications': self.registry.certification_count,
        }

    # ========================================================================
    # NOTIFICATIONS
    # ========================================================================

    def subscribe(self, listener: Listener) -> None:
        """Receive each notification after its transition commits."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def _emit(self, kind: type, timestamp: int, **fields) -> Notification:
        note = kind(sequence=self._next_sequence, timestamp=timestamp, **fields)
        self._next_sequence += 1
        self.event_log.append(note)
        self._outbox.append(note)
        return note

    def _deliver(self) -> None:
        """
        Hand committed notifications to every listener.

        The transition has already committed, so a listener that raises is
        recorded in delivery_failures and the remaining listeners and notes
        are still served. Nothing propagates to the caller.
        """
        outbox, self._outbox = self._outbox, []
        for note in outbox:
            for listener in list(self._listeners):
                try:
                    listener(note)
                except Exception as exc:
                    self.delivery_failures.append((note, listener, exc))
                    if self.verbose:
                        print(f"✗ LISTENER FAILED on {note.kind} #{note.sequence}: "
                              f"{type(exc).__name__}: {exc}")

    # ========================================================================
    # ATOMICITY
    # ========================================================================

    def _snapshot(self) -> tuple:
        settlement_checkpoint = (
            self.settlement.checkpoint() if isinstance(self.settlement, SupportsRollback) else None
        )
        return (
            self._series,
            dict(self._holdings),
            self.registry.snapshot(),
            len(self.event_log),
            len(self._outbox),
            self._next_sequence,
            settlement_checkpoint,
        )

    def _restore(self, snapshot: tuple) -> None:
        (series, holdings, registry_state, log_len, outbox_len,
         next_sequence, settlement_checkpoint) = snapshot
        self._series = series
        self._holdings = holdings
        self.registry.restore(registry_state)
        del self.event_log[log_len:]
        del self._outbox[outbox_len:]
        self._next_sequence = next_sequence
        # Only this bond's own transfers are reversed; the asset is shared.
        if settlement_checkpoint is not None:
            self.settlement.rollback(settlement_checkpoint)

    @contextmanager
    def _atomic(self, operation: str):
        """
        Run one mutating operation all-or-nothing.

        Any exception restores the aggregate to the state at entry, reverses
        the settlement transfers this bond made since entry (when the adapter
        supports it) and propagates unchanged. Subscribers are notified only
        when the outermost operation commits.
        """
        with self._lock:
            snapshot = self._snapshot()
            self._depth += 1
            try:
                yield
            except Exception as exc:
                self._restore(snapshot)
                if self.verbose:
                    print(f"✗ REJECTED {operation}: {type(exc).__name__}: {exc}")
                raise
            finally:
                self._depth -= 1
            if self._depth == 0:
                self._deliver()

    def _pull(self, source: str, amount: int) -> None:
        if self.settlement.pull(source, amount) is not True:
            raise PaymentFailed(f"pull of {amount} from {source} failed")

    def _push(self, dest: str, amount: int) -> None:
        if self.settlement.push(dest, amount) is not True:
            raise PaymentFailed(f"push of {amount} to {dest} failed")

    # ========================================================================
    # BOND LEDGER (Mutating)
    # ========================================================================

    def purchase_bonds(self, buyer: str, units: int) -> int:
        """
        Buy units bonds at face value.

        Resets the buyer's accrual point to now. Coupon accrued on an existing
        position and not yet claimed is forfeited, since accrual is measured
        only from the latest accrual point.

        Returns:
            Cost paid in settlement units

        Raises:
            BondMatured: At or after maturity
            InvalidBondAmount: units == 0
            InsufficientBondsAvailable: units > available supply
            PaymentFailed: The settlement pull did not succeed
        """
        _require_identity('buyer', buyer)
        require_uint('units', units)

        with self._atomic('purchase_bonds'):
            now = self.clock.now()
            series = self._series
            if now >= series.maturity_timestamp:
                raise BondMatured(f"{self.terms.symbol} matured at {series.maturity_timestamp}")
            if units == 0:
                raise InvalidBondAmount("units must be positive")
            if units > series.available_supply:
                raise InsufficientBondsAvailable(
                    f"requested {units}, available {series.available_supply}"
                )

            cost = calculate_bond_value(series, units)
            holding = self.get_holding(buyer)
            self._series = replace(
                series, available_supply=checked_sub(series.available_supply, units)
            )
            self._holdings[buyer] = Holding(
                units=checked_add(holding.units, units),
                last_accrual_timestamp=now,
            )

            self._pull(buyer, cost)
            self._emit(BondsPurchased, now, buyer=buyer, units=units, cost=cost)

        if self.verbose:
            print(f"✓ PURCHASED: {buyer} {units} {self.terms.symbol} for {cost}")
        return cost

    def claim_coupon(self, holder: str) -> int:
        """
        Pay out all whole periods of coupon accrued since the last accrual point.

        Returns:
            Coupon paid

        Raises:
            NoCouponAvailable: Nothing has accrued
            PaymentFailed: The settlement push did not succeed
        """
        _require_identity('holder', holder)

        with self._atomic('claim_coupon'):
            now = self.clock.now()
            holding = self.get_holding(holder)
            amount = calculate_claimable_coupon(self._series, holding, now)
            if amount == 0:
                raise NoCouponAvailable(f"no coupon available for {holder}")

            self._holdings[holder] = replace(holding, last_accrual_timestamp=now)

            self._push(holder, amount)
            self._emit(CouponClaimed, now, holder=holder, amount=amount)

        if self.verbose:
            print(f"✓ COUPON: {holder} claimed {amount}")
        return amount

    def redeem_bonds(self, holder: str) -> int:
        """
        Redeem the holder's whole position at maturity for principal plus
        any outstanding coupon.

        Redeemed units do not return to available supply.

        Returns:
            Total paid (principal + coupon)

        Raises:
            BondNotMatured: Before maturity
            NoBondsToRedeem: Holder has no units
            PaymentFailed: The settlement push did not succeed
        """
        _require_identity('holder', holder)

        with self._atomic('redeem_bonds'):
            now = self.clock.now()
            if now < self._series.maturity_timestamp:
                raise BondNotMatured(
                    f"{self.terms.symbol} matures at {self._series.maturity_timestamp}"
                )
            holding = self.get_holding(holder)
            if holding.units == 0:
                raise NoBondsToRedeem(f"{holder} holds no {self.terms.symbol}")

            total = calculate_redemption_total(self._series, holding, now)
            self._holdings.pop(holder, None)

            self._push(holder, total)
            self._emit(BondsRedeemed, now, holder=holder, units=holding.units, total=total)

        if self.verbose:
            print(f"✓ REDEEMED: {holder} {holding.units} {self.terms.symbol} for {total}")
        return total

    # ========================================================================
    # IMPACT REGISTRY (Mutating)
    # ========================================================================

    def add_impact_report(self, caller: str, uri: str, content_hash: str, summary_metrics: str) -> int:
        """
        Append an unverified impact report. Issuer only.

        Returns:
            Index of the new report
        """
        with self._atomic('add_impact_report'):
            require_role(self.roles, caller, ISSUER_ROLE)
            now = self.clock.now()
            index = self.registry.add_report(uri, content_hash, summary_metrics, now)
            self._emit(ImpactReportAdded, now, index=index, uri=uri, content_hash=content_hash)

        if self.verbose:
            print(f"✓ REPORT #{index}: {uri}")
        return index

    def verify_impact_report(self, caller: str, index: int) -> ImpactReport:
        """
        Mark a report verified. Verifier only; one-way.

        Raises:
            AccessDenied: caller is not a Verifier
            ReportDoesNotExist: index out of range
            ReportAlreadyVerified: report was already verified
        """
        with self._atomic('verify_impact_report'):
            require_role(self.roles, caller, VERIFIER_ROLE)
            now = self.clock.now()
            report = self.registry.verify_report(index)
            self._emit(ImpactReportVerified, now, index=index, verifier=caller)

        if self.verbose:
            print(f"✓ VERIFIED REPORT #{index} by {caller}")
        return report

    def add_certification(self, caller: str, certification: str) -> int:
        """Append a green certification identifier. Issuer only."""
        with self._atomic('add_certification'):
            require_role(self.roles, caller, ISSUER_ROLE)
            now = self.clock.now()
            index = self.registry.add_certification(certification)
            self._emit(CertificationAdded, now, index=index, certification=certification)

        if self.verbose:
            print(f"✓ CERTIFICATION #{index}: {certification}")
        return index

    # ========================================================================
    # ACCESS POLICY (Mutating)
    # ========================================================================

    def grant_role(self, caller: str, role: str, account: str) -> bool:
        """
        Grant role to account. Admin only.

        Returns:
            True if the grant is new; re-granting a held role changes nothing.
        """
        with self._atomic('grant_role'):
            require_role(self.roles, caller, ADMIN_ROLE)
            now = self.clock.now()
            # The role source is not rolled back, so the grant is the last fallible step.
            granted = self.roles.grant_role(role, account)
            if granted:
                self._emit(RoleGranted, now, role=role, account=account, sender=caller)

        if self.verbose and granted:
            print(f"✓ GRANTED: {role} to {account}")
        return granted

    def has_role(self, identity: str, role: str) -> bool:
        return self.roles.has_role(identity, role)

    # ========================================================================
    # EMERGENCY WITHDRAWAL (Mutating)
    # ========================================================================

    def emergency_withdraw(self, caller: str, amount: int) -> int:
        """
        Move custodied settlement asset to the issuer. Issuer only.

        Draws on the custody balance alone: available supply and holdings are
        untouched.

        Raises:
            AccessDenied: caller is not an Issuer
            TooEarlyForWithdrawal: before issuance + withdrawal_delay
            InsufficientFunds: amount exceeds the custody balance
            PaymentFailed: The settlement push did not succeed
        """
        require_uint('amount', amount)

        with self._atomic('emergency_withdraw'):
            require_role(self.roles, caller, ISSUER_ROLE)
            now = self.clock.now()
            unlock = self.withdrawal_unlock_timestamp
            if now < unlock:
                raise TooEarlyForWithdrawal(f"withdrawal unlocks at {unlock}")
            available = self.settlement.balance()
            if amount > available:
                raise InsufficientFunds(f"requested {amount}, custody holds {available}")

            self._push(caller, amount)
            self._emit(EmergencyWithdrawal, now, issuer=caller, amount=amount)

        if self.verbose:
            print(f"⚠️  EMERGENCY WITHDRAWAL: {caller} took {amount}")
        return amount

    def __repr__(self) -> str:
        s = self._series
        return (f"GreenBond({self.terms.symbol}, available={s.available_supply}/{s.total_supply}, "
                f"holders={len(self.holders())}, reports={self.registry.report_count})")


def create_green_bond(
    terms: BondTerms,
    issuer: str = "issuer",
    currency: str = "USDC",
    start_time: int = DEFAULT_START_TIME,
    name: Optional[str] = None,
    verbose: bool = True,
) -> GreenBond:
    """
    Issue a bond wired to an in-memory settlement token and a manual clock.

    The returned bond exposes its collaborators as bond.clock (ManualClock),
    bond.settlement (TokenSettlement) and bond.settlement.token (TokenLedger).
    """
    clock = ManualClock(start_time)
    token = TokenLedger(currency)
    settlement = TokenSettlement(token, custody_wallet=f"bond:{terms.symbol}")
    return GreenBond(
        name=name or terms.symbol,
        terms=terms,
        settlement=settlement,
        clock=clock,
        deployer=issuer,
        verbose=verbose,
    )
