"""Configuration for the IAM reconciler.

Values are read from environment variables and may be overridden on the
command line. The resulting objects are passed explicitly to each reconciler
and are never mutated afterwards.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Optional


@dataclass(frozen=True)
class ReconcilerConfig:
    """Settings shared by the user, group and policy reconcilers."""

    # Applied as ``Path`` on create calls and ``PathPrefix`` on list calls.
    path_prefix: str = ""

    @classmethod
    def from_env(cls) -> "ReconcilerConfig":
        """Load from environment variables."""
        return cls(path_prefix=os.getenv("USERS_PATH", ""))

    @property
    def list_prefix(self) -> str:
        """Prefix for list calls; an unset prefix lists everything."""
        return self.path_prefix or "/"


@dataclass(frozen=True)
class NotifierConfig:
    """Where generated credentials are emailed."""

    sender: str = ""
    recipient: str = ""
    region: Optional[str] = None

    @classmethod
    def from_env(cls) -> "NotifierConfig":
        """Load from environment variables."""
        return cls(
            sender=os.getenv("NOTIFY_SENDER", ""),
            recipient=os.getenv("NOTIFY_RECIPIENT", ""),
            region=os.getenv("NOTIFY_REGION") or None,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.sender and self.recipient)


@dataclass(frozen=True)
class Config:
    """Main configuration object."""

    reconciler: ReconcilerConfig = field(default_factory=ReconcilerConfig)
    notifier: NotifierConfig = field(default_factory=NotifierConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Load all configuration from environment variables."""
        return cls(
            reconciler=ReconcilerConfig.from_env(),
            notifier=NotifierConfig.from_env(),
        )

    @classmethod
    def default(cls) -> "Config":
        """Return default configuration."""
        return cls()

    def with_overrides(
        self,
        *,
        path_prefix: Optional[str] = None,
        sender: Optional[str] = None,
        recipient: Optional[str] = None,
        region: Optional[str] = None,
    ) -> "Config":
        """Return a copy with any non-``None`` override applied."""

        reconciler = self.reconciler
        if path_prefix is not None:
            reconciler = replace(reconciler, path_prefix=path_prefix)

        notifier_changes = {
            key: value
            for key, value in (("sender", sender), ("recipient", recipient), ("region", region))
            if value is not None
        }
        notifier = replace(self.notifier, **notifier_changes)
        return Config(reconciler=reconciler, notifier=notifier)


__all__ = ["Config", "NotifierConfig", "ReconcilerConfig"]
