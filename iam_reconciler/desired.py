"""Loading of desired-state documents (``users.yml``, ``groups.yml``, ``policies.yml``)."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

import yaml

from .models import DesiredState, GroupSpec, PolicySpec, UserSpec

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class DesiredStateError(ValueError):
    """Raised when a desired-state document does not have the expected shape."""


def load_document(path: PathLike) -> Any:
    """Read a YAML or JSON document from *path*."""

    path = Path(path)
    with path.open("r", encoding="utf-8") as fh:
        if path.suffix in (".yml", ".yaml"):
            try:
                return yaml.safe_load(fh)
            except yaml.YAMLError as exc:
                raise DesiredStateError(f"{path}: invalid YAML: {exc}") from exc
        try:
            return json.load(fh)
        except json.JSONDecodeError as exc:
            raise DesiredStateError(f"{path}: invalid JSON: {exc}") from exc


def _entries(doc: Any, key: str) -> List[Any]:
    if not isinstance(doc, Mapping):
        raise DesiredStateError(f"Expected a mapping with a '{key}' key")
    entries = doc.get(key)
    if entries is None:
        raise DesiredStateError(f"Missing '{key}' key")
    if not isinstance(entries, list):
        raise DesiredStateError(f"'{key}' must be a list, got {type(entries).__name__}")
    return entries


def _name(entry: Any, key: str) -> str:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, Mapping) and isinstance(entry.get("name"), str):
        return entry["name"]
    raise DesiredStateError(f"Every entry in '{key}' needs a name, got {entry!r}")


def parse_users(doc: Any) -> List[UserSpec]:
    """Parse ``{users: [name, ...]}``."""

    return [UserSpec.from_name(_name(entry, "users")) for entry in _entries(doc, "users")]


def parse_groups(doc: Any) -> List[GroupSpec]:
    """Parse ``{groups: [name | {name, users}, ...]}``."""

    groups: List[GroupSpec] = []
    for entry in _entries(doc, "groups"):
        name = _name(entry, "groups")
        members = (entry.get("users") or []) if isinstance(entry, Mapping) else []
        if not isinstance(members, list):
            raise DesiredStateError(f"Members of group '{name}' must be a list")
        groups.append(GroupSpec(name=name, members=tuple(members)))
    return groups


def parse_policies(doc: Any) -> List[PolicySpec]:
    """Parse ``{policies: [{name, document}, ...]}``."""

    policies: List[PolicySpec] = []
    for entry in _entries(doc, "policies"):
        if not isinstance(entry, Mapping) or "document" not in entry:
            raise DesiredStateError(f"Policy entries need a name and a document, got {entry!r}")
        policies.append(PolicySpec(name=_name(entry, "policies"), document=entry["document"]))
    return policies


def load_desired_state(
    users: Optional[PathLike] = None,
    groups: Optional[PathLike] = None,
    policies: Optional[PathLike] = None,
) -> DesiredState:
    """Build a :class:`DesiredState` from whichever documents are supplied."""

    state = DesiredState()
    if users is not None:
        state.users = parse_users(load_document(users))
        logger.info(f"Loaded {len(state.users)} desired users from {users}")
    if groups is not None:
        state.groups = parse_groups(load_document(groups))
        logger.info(f"Loaded {len(state.groups)} desired groups from {groups}")
    if policies is not None:
        state.policies = parse_policies(load_document(policies))
        logger.info(f"Loaded {len(state.policies)} desired policies from {policies}")
    return state


__all__ = [
    "DesiredStateError",
    "load_desired_state",
    "load_document",
    "parse_groups",
    "parse_policies",
    "parse_users",
]
