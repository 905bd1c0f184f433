"""Module entry-point for ``python -m iam_reconciler``."""
from __future__ import annotations

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
