"""
impact.py - Impact report and certification registry

Append-only storage for environmental-impact disclosures and green
certifications. Records are never deleted; a report's verified flag moves
from False to True exactly once.

Role checks and notifications live in GreenBond. This class only enforces
the registry's own invariants.
"""

from __future__ import annotations
from dataclasses import replace
from typing import List, Tuple

from .core import (
    ImpactReport, ReportDoesNotExist, ReportAlreadyVerified, CertificationDoesNotExist,
)


def _require_index(index) -> None:
    if isinstance(index, bool) or not isinstance(index, int):
        raise ValueError(f"index must be an int, got {type(index).__name__}")


class ImpactRegistry:
    """Ordered impact reports and certifications, indexed by insertion order."""

    def __init__(self):
        self._reports: List[ImpactReport] = []
        self._certifications: List[str] = []

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def add_report(self, uri: str, content_hash: str, summary_metrics: str, created_at: int) -> int:
        """Append an unverified report and return its index."""
        for name, value in (('uri', uri), ('content_hash', content_hash),
                            ('summary_metrics', summary_metrics)):
            if not isinstance(value, str):
                raise ValueError(f"{name} must be a string, got {type(value).__name__}")
        self._reports.append(ImpactReport(
            uri=uri,
            content_hash=content_hash,
            summary_metrics=summary_metrics,
            created_at=created_at,
        ))
        return len(self._reports) - 1

    def get_report(self, index: int) -> ImpactReport:
        """
        Raises:
            ReportDoesNotExist: If index is out of range (negative included)
        """
        _require_index(index)
        if index < 0 or index >= len(self._reports):
            raise ReportDoesNotExist(f"No impact report at index {index}")
        return self._reports[index]

    def verify_report(self, index: int) -> ImpactReport:
        """
        Mark a report verified and return the updated record.

        Raises:
            ReportDoesNotExist: If index is out of range
            ReportAlreadyVerified: If the report was verified before
        """
        report = self.get_report(index)
        if report.verified:
            raise ReportAlreadyVerified(f"Impact report {index} already verified")
        verified = replace(report, verified=True)
        self._reports[index] = verified
        return verified

    @property
    def report_count(self) -> int:
        return len(self._reports)

    def reports(self) -> Tuple[ImpactReport, ...]:
        return tuple(self._reports)

    # ------------------------------------------------------------------
    # Certifications
    # ------------------------------------------------------------------

    def add_certification(self, certification: str) -> int:
        """Append a certification identifier and return its index."""
        if not isinstance(certification, str) or not certification.strip():
            raise ValueError("certification cannot be empty")
        self._certifications.append(certification)
        return len(self._certifications) - 1

    def get_certification(self, index: int) -> str:
        """
        Raises:
            CertificationDoesNotExist: If index is out of range (negative included)
        """
        _require_index(index)
        if index < 0 or index >= len(self._certifications):
            raise CertificationDoesNotExist(f"No certification at index {index}")
        return self._certifications[index]

    @property
    def certification_count(self) -> int:
        return len(self._certifications)

    def certifications(self) -> Tuple[str, ...]:
        return tuple(self._certifications)

    # ------------------------------------------------------------------
    # Rollback support
    # ------------------------------------------------------------------

    def snapshot(self) -> tuple:
        return tuple(self._reports), tuple(self._certifications)

    def restore(self, snapshot: tuple) -> None:
        reports, certifications = snapshot
        self._reports = list(reports)
        self._certifications = list(certifications)

    def __repr__(self):
        verified = sum(1 for r in self._reports if r.verified)
        return (f"ImpactRegistry({len(self._reports)} reports, {verified} verified, "
                f"{len(self._certifications)} certifications)")
