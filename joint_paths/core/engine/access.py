from __future__ import annotations

import functools
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from joint_paths.core.engine.ledger import PositionLedger
from joint_paths.core.errors import Unauthorized


class Role(StrEnum):
    PROVIDERS = "providers"
    AUTHORIZED = "authorized"
    GOVERNANCE = "governance"


def _normalize(addresses: list[str]) -> frozenset[str]:
    return frozenset(a.lower() for a in addresses if a)


@dataclass(frozen=True)
class AccessControl:
    providers: frozenset[str]
    governance: frozenset[str]
    strategists: frozenset[str]

    @classmethod
    def from_ledger(cls, ledger: PositionLedger) -> AccessControl:
        a, b = ledger.leg_a.provider, ledger.leg_b.provider
        return cls(
            providers=_normalize([a.address, b.address]),
            governance=_normalize([a.governance, b.governance]),
            strategists=_normalize([a.strategist, b.strategist]),
        )

    @property
    def authorized(self) -> frozenset[str]:
        return self.governance | self.strategists

    def members(self, role: Role) -> frozenset[str]:
        match role:
            case Role.PROVIDERS:
                return self.providers
            case Role.GOVERNANCE:
                return self.governance
            case Role.AUTHORIZED:
                return self.authorized

    def has_role(self, caller: str | None, role: Role) -> bool:
        return bool(caller) and caller.lower() in self.members(role)

    def require(self, caller: str | None, role: Role) -> None:
        if not self.has_role(caller, role):
            raise Unauthorized(caller, role)


def _gate(role: Role) -> Callable[[Callable], Callable]:
    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        async def wrapper(self: Any, *args: Any, caller: str | None = None, **kwargs: Any) -> Any:
            self.access.require(caller, role)
            return await fn(self, *args, caller=caller, **kwargs)

        return wrapper

    return decorator


only_providers = _gate(Role.PROVIDERS)
only_authorized = _gate(Role.AUTHORIZED)
only_governance = _gate(Role.GOVERNANCE)
