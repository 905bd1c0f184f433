"""Data models for desired IAM state and reconciliation results."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple

SERVICE_ACCOUNT_SUFFIX = "_keys"


class AccountKind(str, Enum):
    """How a user authenticates, decided once when the name is parsed."""

    INTERACTIVE = "interactive"
    SERVICE = "service"


def classify_user(name: str) -> AccountKind:
    """Return the account kind for *name*.

    Names whose last five characters are ``_keys`` are service accounts and
    receive programmatic access keys instead of a console password.
    """

    if name[-len(SERVICE_ACCOUNT_SUFFIX):] == SERVICE_ACCOUNT_SUFFIX:
        return AccountKind.SERVICE
    return AccountKind.INTERACTIVE


@dataclass(frozen=True)
class UserSpec:
    """A desired IAM user."""

    name: str
    kind: AccountKind

    @classmethod
    def from_name(cls, name: str) -> "UserSpec":
        return cls(name=name, kind=classify_user(name))

    @property
    def is_service_account(self) -> bool:
        return self.kind is AccountKind.SERVICE


@dataclass(frozen=True)
class GroupSpec:
    """A desired IAM group and the users added to it on creation."""

    name: str
    members: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PolicySpec:
    """A desired managed policy."""

    name: str
    document: Any


@dataclass
class DesiredState:
    """Everything the account should contain, grouped by entity kind."""

    users: List[UserSpec] = field(default_factory=list)
    groups: List[GroupSpec] = field(default_factory=list)
    policies: List[PolicySpec] = field(default_factory=list)


@dataclass
class Delta:
    """Identifiers to create and to delete for one entity kind."""

    to_create: List[str]
    to_delete: List[str]

    @property
    def empty(self) -> bool:
        return not self.to_create and not self.to_delete


@dataclass
class ReconcileReport:
    """Raw API responses from one ``update`` run, as two parallel sequences."""

    entity: str
    created: List[Any] = field(default_factory=list)
    deleted: List[Any] = field(default_factory=list)

    def as_dict(self) -> Dict[str, List[Any]]:
        # Policies have always reported singular keys.
        if self.entity == "policies":
            return {"createResult": self.created, "deleteResult": self.deleted}
        return {"createResults": self.created, "deleteResults": self.deleted}


@dataclass
class AccountReport:
    """Aggregated reports for every entity kind reconciled in one run."""

    account: str
    reports: List[ReconcileReport] = field(default_factory=list)
    notification_failures: List[BaseException] = field(default_factory=list)


__all__ = [
    "AccountKind",
    "AccountReport",
    "Delta",
    "DesiredState",
    "GroupSpec",
    "PolicySpec",
    "ReconcileReport",
    "SERVICE_ACCOUNT_SUFFIX",
    "UserSpec",
    "classify_user",
]
