"""
access.py - Role registry for the green bond

Three non-exclusive roles gate the mutating operations:
    ADMIN     bootstrap holder of administrative power, grants roles
    ISSUER    adds impact reports and certifications, emergency withdrawal
    VERIFIER  verifies impact reports

Memberships are only ever added. There is no revoke.
"""

from __future__ import annotations
from typing import Dict, Iterable, Optional, Set

from .core import ROLES, AccessDenied


class AccessPolicy:
    """
    In-memory implementation of the RoleSource protocol.

    Example:
        policy = AccessPolicy({"ADMIN": {"treasury"}, "ISSUER": {"treasury"}})
        policy.has_role("treasury", "ISSUER")   # True
        policy.grant_role("VERIFIER", "auditor")
    """

    def __init__(self, members: Optional[Dict[str, Iterable[str]]] = None):
        self._members: Dict[str, Set[str]] = {role: set() for role in ROLES}
        for role, accounts in (members or {}).items():
            for account in accounts:
                self.grant_role(role, account)

    def has_role(self, identity: str, role: str) -> bool:
        return identity in self._members.get(role, ())

    def grant_role(self, role: str, account: str) -> bool:
        """
        Add account to role.

        Returns:
            True if the membership is new, False if it was already held.

        Raises:
            ValueError: Unknown role or empty account
        """
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        if not account or not account.strip():
            raise ValueError("account cannot be empty")
        if account in self._members[role]:
            return False
        self._members[role].add(account)
        return True

    def members(self, role: str) -> Set[str]:
        """Copy of the accounts holding role."""
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        return set(self._members[role])

    def __repr__(self) -> str:
        counts = ", ".join(f"{r}={len(self._members[r])}" for r in sorted(self._members))
        return f"AccessPolicy({counts})"


def require_role(roles, identity: str, role: str) -> None:
    """
    Raise AccessDenied unless identity holds role.

    Evaluated at the top of every role-gated operation.
    """
    if not roles.has_role(identity, role):
        raise AccessDenied(f"{identity} lacks role {role}")
