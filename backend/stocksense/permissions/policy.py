# Overview: Access policy gate mapping caller roles to permitted operations.

"""
Access Policy Gate

WHY: One table decides who may do what. The stock transaction manager and the
analytics engine ask the policy; they never compare role strings themselves.

DESIGN PRINCIPLES:
- Fail closed: unknown roles and unknown operations are denied
- The table is data: replaceable from config or a JSON file at startup
- Pure: allowed() touches no database and no request state
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Iterable, Mapping

from ..errors import Forbidden
from .helpers import validate_permission_code
from .roles import DEFAULT_ROLE_PERMISSIONS, Role


@dataclass(frozen=True)
class Actor:
    """Resolved caller identity handed to the core by the outer layer."""
    user_id: int
    role: Role

    @classmethod
    def of(cls, user_id: int, role) -> "Actor":
        return cls(user_id=user_id, role=Role.parse(role))


class AccessPolicy:
    """Immutable role -> operation table."""

    def __init__(self, table: Mapping[Role, Iterable[str]]):
        self._table = {role: frozenset(ops) for role, ops in table.items()}

    @classmethod
    def default(cls) -> "AccessPolicy":
        return cls.from_mapping(DEFAULT_ROLE_PERMISSIONS)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Iterable[str]]) -> "AccessPolicy":
        """
        Build a policy from {"Manager": ["record-sale", ...]}.

        Raises ValueError on unknown roles or operation codes so a typo in an
        override fails at startup instead of silently denying.
        """
        table: dict[Role, set[str]] = {}
        for raw_role, operations in mapping.items():
            role = Role.parse(raw_role)
            codes = set()
            for code in operations:
                if not validate_permission_code(code):
                    raise ValueError(f"Unknown operation {code!r} for role {role.value}")
                codes.add(code)
            table[role] = codes
        return cls(table)

    @classmethod
    def from_file(cls, path: str) -> "AccessPolicy":
        with open(path, "r", encoding="utf-8") as fh:
            mapping = json.load(fh)
        if not isinstance(mapping, dict):
            raise ValueError("Role policy file must contain a JSON object")
        return cls.from_mapping(mapping)

    @classmethod
    def from_config(cls, config: Mapping) -> "AccessPolicy":
        """ROLE_PERMISSIONS wins over ROLE_POLICY_FILE; both absent -> defaults."""
        mapping = config.get("ROLE_PERMISSIONS")
        if mapping:
            return cls.from_mapping(mapping)
        path = config.get("ROLE_POLICY_FILE")
        if path:
            return cls.from_file(path)
        return cls.default()

    def allowed(self, role, operation: str) -> bool:
        try:
            role = Role.parse(role)
        except ValueError:
            return False
        return operation in self._table.get(role, frozenset())

    def require(self, actor: Actor, operation: str) -> None:
        """Raise Forbidden unless actor.role may perform operation."""
        if not self.allowed(actor.role, operation):
            raise Forbidden(
                f"Role {Role.parse(actor.role).value} may not perform {operation}",
                details={"required_permission": operation},
            )

    def operations_for(self, role) -> frozenset[str]:
        try:
            return self._table.get(Role.parse(role), frozenset())
        except ValueError:
            return frozenset()

    def to_dict(self) -> dict[str, list[str]]:
        return {role.value: sorted(ops) for role, ops in self._table.items()}


_DEFAULT_POLICY = AccessPolicy.default()


def allowed(role, operation: str, policy: AccessPolicy | None = None) -> bool:
    """Pure check against the given policy (defaults to the built-in table)."""
    return (policy or _DEFAULT_POLICY).allowed(role, operation)
