"""Declarative reconciler for AWS IAM users, groups and managed policies."""

from __future__ import annotations

from .config import Config, NotifierConfig, ReconcilerConfig
from .core import print_report, reconcile_account, report_to_dict
from .desired import DesiredStateError, load_desired_state
from .diff import diff
from .models import (
    AccountKind,
    AccountReport,
    Delta,
    DesiredState,
    GroupSpec,
    PolicySpec,
    ReconcileReport,
    UserSpec,
    classify_user,
)
from .notifier import Notifier, SesNotifier
from .services.groups import GroupReconciler
from .services.policies import PolicyReconciler
from .services.users import UserReconciler

__all__ = [
    "AccountKind",
    "AccountReport",
    "Config",
    "Delta",
    "DesiredState",
    "DesiredStateError",
    "GroupReconciler",
    "GroupSpec",
    "Notifier",
    "NotifierConfig",
    "PolicyReconciler",
    "PolicySpec",
    "ReconcileReport",
    "ReconcilerConfig",
    "SesNotifier",
    "UserReconciler",
    "UserSpec",
    "classify_user",
    "diff",
    "load_desired_state",
    "print_report",
    "reconcile_account",
    "report_to_dict",
]
