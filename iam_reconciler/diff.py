"""Set difference between desired and live identifiers."""
from __future__ import annotations

from typing import Iterable

from .models import Delta
from .utils import unique


def diff(desired: Iterable[str], live: Iterable[str]) -> Delta:
    """Return the identifiers to create and to delete.

    ``to_create`` is ``desired - live`` and ``to_delete`` is ``live - desired``.
    Identifiers are compared as opaque strings; an identifier present on both
    sides is left alone even if its attributes differ. Each result keeps the
    first-seen order of its input.
    """

    desired = unique(desired)
    live = unique(live)
    desired_set = set(desired)
    live_set = set(live)
    return Delta(
        to_create=[name for name in desired if name not in live_set],
        to_delete=[name for name in live if name not in desired_set],
    )


__all__ = ["diff"]
