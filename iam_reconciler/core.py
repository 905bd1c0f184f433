"""Core orchestration utilities for reconciling an AWS account."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import boto3

from .config import ReconcilerConfig
from .models import AccountReport, DesiredState
from .notifier import Notifier, drain
from .services import RECONCILER_REGISTRY, ReconcileContext
from .services.groups import GroupReconciler

logger = logging.getLogger(__name__)


def normalize_kinds(kinds: Iterable[str]) -> List[str]:
    """Normalize and de-duplicate entity kinds, rejecting unknown ones."""

    normalized: List[str] = []
    for kind in kinds:
        if kind not in RECONCILER_REGISTRY:
            valid = ", ".join(sorted(RECONCILER_REGISTRY.keys()))
            raise ValueError(f"Unknown entity kind '{kind}'. Valid kinds: {valid}")
        normalized.append(RECONCILER_REGISTRY.normalize(kind))
    return list(dict.fromkeys(normalized))


async def reconcile_account(
    iam: boto3.client,
    desired: DesiredState,
    kinds: Iterable[str],
    *,
    account: str,
    config: ReconcilerConfig,
    notifier: Optional[Notifier] = None,
) -> AccountReport:
    """Run the reconciler of every requested entity kind against *iam*.

    Each kind is reconciled on its own; there is no transaction or ordering
    guarantee across kinds. The first remote error propagates to the caller.
    Password emails still in flight are awaited before returning and their
    failures are recorded on the report.
    """

    ctx = ReconcileContext(
        iam=iam,
        config=config,
        account=account,
        notifier=notifier,
        groups=GroupReconciler(iam, config),
    )
    report = AccountReport(account=account)
    try:
        for kind in normalize_kinds(kinds):
            logger.info(f"Reconciling {kind} for account {account}")
            report.reports.append(await RECONCILER_REGISTRY[kind](ctx, desired))
    finally:
        report.notification_failures = await drain(ctx.pending_notifications)
    return report


def report_to_dict(report: AccountReport) -> Dict[str, Any]:
    """Render *report* in the shape written by ``--json``."""

    return {
        "account": report.account,
        **{entry.entity: entry.as_dict() for entry in report.reports},
        "notificationFailures": [str(exc) for exc in report.notification_failures],
    }


def _describe(response: Any) -> str:
    if isinstance(response, dict):
        for key in ("User", "Group", "Policy"):
            entity = response.get(key)
            if isinstance(entity, dict):
                return entity.get("Arn") or entity.get(f"{key}Name") or str(entity)
        for key in ("PolicyArn", "PolicyName", "UserName", "GroupName"):
            if key in response:
                return str(response[key])
    return "ok"


def print_report(report: AccountReport) -> None:
    """Pretty-print *report* to stdout."""

    if not any(entry.created or entry.deleted for entry in report.reports):
        print(f"No changes applied to {report.account}.")
    else:
        header = f"{'Entity':<10} {'Action':<8} Result"
        print(header)
        print("-" * len(header))
        for entry in report.reports:
            for response in entry.created:
                print(f"{entry.entity:<10} {'create':<8} {_describe(response)}")
            for response in entry.deleted:
                print(f"{entry.entity:<10} {'delete':<8} {_describe(response)}")

    for failure in report.notification_failures:
        print(f"Warning: credential notification failed: {failure}")


__all__ = ["normalize_kinds", "print_report", "reconcile_account", "report_to_dict"]
