"""
access.py - Authorization gates

Implementations of the AccessGate protocol:
- RoleGate: role grants plus one of the two authorization postures
- OpenGate: authorizes every call

RoleGate mirrors a role-based access registry: DEFAULT_ADMIN_ROLE manages
grants, ADMIN_ROLE is required to act. The posture decides who besides an
admin may trigger the single-payee release: nobody, anyone, or the payee.
"""

from typing import Dict, Set

from .core import (
    Action, AccessPosture, AccessContext,
    ADMIN_ROLE, DEFAULT_ADMIN_ROLE,
    NotAuthorized,
    _require_account,
)


class RoleGate:
    """
    Role-based authorization with a configurable posture.

    Example:
        gate = RoleGate("owner", posture=AccessPosture.PAYEE_PULL)
        gate.grant_role("owner", ADMIN_ROLE, "operator")
        gate.is_authorized("operator", Action.RELEASE, {})           # True
        gate.is_authorized("alice", Action.RELEASE_TO_PAYEE, {})      # True (posture)
        gate.is_authorized("alice", Action.ADD_PAYEE, {})             # False

        strict = RoleGate("owner", posture=AccessPosture.SELF_PULL)
        strict.is_authorized("alice", Action.RELEASE_TO_PAYEE, {'payee': "alice"})  # True
        strict.is_authorized("bob", Action.RELEASE_TO_PAYEE, {'payee': "alice"})    # False
    """

    def __init__(self, admin: str, posture: AccessPosture = AccessPosture.ADMIN_ONLY):
        """
        Create a gate and grant both roles to `admin`.

        Args:
            admin: Account that deploys the splitter
            posture: Authorization posture (default: ADMIN_ONLY)
        """
        _require_account(admin, "admin")
        self.posture = posture
        self._roles: Dict[str, Set[str]] = {
            DEFAULT_ADMIN_ROLE: {admin},
            ADMIN_ROLE: {admin},
        }

    def has_role(self, role: str, account: str) -> bool:
        return account in self._roles.get(role, set())

    def members(self, role: str) -> Set[str]:
        return set(self._roles.get(role, set()))

    def _check_role(self, role: str, account: str) -> None:
        if not self.has_role(role, account):
            raise NotAuthorized(f"account {account} is missing role {role}")

    def grant_role(self, caller: str, role: str, account: str) -> None:
        """
        Grant `role` to `account`.

        Raises:
            NotAuthorized: If caller does not hold DEFAULT_ADMIN_ROLE
        """
        self._check_role(DEFAULT_ADMIN_ROLE, caller)
        _require_account(account)
        self._roles.setdefault(role, set()).add(account)

    def revoke_role(self, caller: str, role: str, account: str) -> None:
        """
        Revoke `role` from `account`. Revoking an absent grant is a no-op.

        Raises:
            NotAuthorized: If caller does not hold DEFAULT_ADMIN_ROLE
        """
        self._check_role(DEFAULT_ADMIN_ROLE, caller)
        self._roles.get(role, set()).discard(account)

    def is_authorized(self, caller: str, action: Action, context: AccessContext) -> bool:
        if action == Action.RELEASE_TO_PAYEE:
            if self.posture == AccessPosture.PAYEE_PULL:
                return True
            if self.posture == AccessPosture.SELF_PULL and context.get('payee') == caller:
                return True
        return self.has_role(ADMIN_ROLE, caller)

    def __repr__(self) -> str:
        admins = len(self._roles.get(ADMIN_ROLE, ()))
        return f"RoleGate({self.posture.value}, {admins} admins)"


class OpenGate:
    """Gate that authorizes every caller for every action."""

    def is_authorized(self, caller: str, action: Action, context: AccessContext) -> bool:
        return True

    def __repr__(self) -> str:
        return "OpenGate()"
