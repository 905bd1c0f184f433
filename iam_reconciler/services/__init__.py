"""Entity reconcilers and the registry that maps entity kinds to them."""
from __future__ import annotations

import asyncio
import importlib
import pkgutil
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Iterator, List, Optional

import boto3

from ..config import ReconcilerConfig
from ..models import DesiredState, ReconcileReport
from ..notifier import Notifier

if TYPE_CHECKING:
    from .groups import GroupReconciler


@dataclass
class ReconcileContext:
    """Collaborators shared by the reconcilers during one account run."""

    iam: boto3.client
    config: ReconcilerConfig
    account: str
    notifier: Optional[Notifier] = None
    groups: Optional["GroupReconciler"] = None
    pending_notifications: List[asyncio.Task] = field(default_factory=list)


EntityReconciler = Callable[[ReconcileContext, DesiredState], Awaitable[ReconcileReport]]


class ReconcilerRegistry:
    """Registry that stores the reconcile entry point of each entity kind."""

    def __init__(self) -> None:
        self._reconcilers: Dict[str, EntityReconciler] = {}

    @staticmethod
    def normalize(name: str) -> str:
        """Return the registry key for *name*."""
        if not name:
            raise ValueError("Entity kind must be a non-empty string")
        return name.strip().lower()

    def register(self, name: str) -> Callable[[EntityReconciler], EntityReconciler]:
        """Return a decorator that registers *name* for the wrapped reconciler."""

        normalized = self.normalize(name)

        def decorator(func: EntityReconciler) -> EntityReconciler:
            if normalized in self._reconcilers and self._reconcilers[normalized] is not func:
                raise ValueError(f"Entity kind '{name}' is already registered")
            self._reconcilers[normalized] = func
            return func

        return decorator

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self.normalize(name) in self._reconcilers

    def __getitem__(self, name: str) -> EntityReconciler:
        return self._reconcilers[self.normalize(name)]

    def keys(self) -> Iterator[str]:
        return iter(self._reconcilers)


RECONCILER_REGISTRY = ReconcilerRegistry()
register_reconciler = RECONCILER_REGISTRY.register


def _import_reconciler_modules() -> None:
    """Import modules that register reconcilers via decorators."""

    package_name = __name__
    package_paths = getattr(__spec__, "submodule_search_locations", None)
    if not package_paths:
        return

    for module_info in pkgutil.iter_modules(package_paths):
        module_name = module_info.name
        if module_name.startswith("_"):
            continue
        importlib.import_module(f"{package_name}.{module_name}")


_import_reconciler_modules()

__all__ = [
    "EntityReconciler",
    "RECONCILER_REGISTRY",
    "ReconcileContext",
    "ReconcilerRegistry",
    "register_reconciler",
]
