"""Command line interface for the IAM reconciler."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import Config
from .core import print_report, reconcile_account, report_to_dict
from .desired import DesiredStateError, load_desired_state
from .notifier import SesNotifier

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Return parsed command line arguments."""

    parser = argparse.ArgumentParser(
        description="Converge IAM users, groups and policies of an AWS account to the desired state."
    )
    parser.add_argument("--profile", help="AWS CLI profile to use", default=None)
    parser.add_argument("--region", help="AWS region for the IAM and SES clients", default=None)
    parser.add_argument("--account", required=True, help="Account name used in notifications")
    parser.add_argument("--users", dest="users_path", help="Desired users document (YAML or JSON)")
    parser.add_argument("--groups", dest="groups_path", help="Desired groups document (YAML or JSON)")
    parser.add_argument(
        "--policies", dest="policies_path", help="Desired policies document (YAML or JSON)"
    )
    parser.add_argument(
        "--path-prefix",
        default=None,
        help="IAM path for created entities and filter for listed ones (default: $USERS_PATH or '/')",
    )
    parser.add_argument("--notify-from", dest="notify_from", default=None, help="SES sender address")
    parser.add_argument("--notify-to", dest="notify_to", default=None, help="Credentials recipient address")
    parser.add_argument("--json", dest="json_path", help="Optional path to export the report as JSON")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point used by ``python -m iam_reconciler``."""

    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = Config.from_env().with_overrides(
        path_prefix=args.path_prefix,
        sender=args.notify_from,
        recipient=args.notify_to,
    )
    if not config.reconciler.path_prefix:
        config = config.with_overrides(path_prefix="/")

    kinds = [
        kind
        for kind, path in (
            ("policies", args.policies_path),
            ("groups", args.groups_path),
            ("users", args.users_path),
        )
        if path
    ]
    if not kinds:
        print(
            "Error: Nothing to reconcile. Provide at least one of --users, --groups or --policies.",
            file=sys.stderr,
        )
        return 1

    try:
        desired = load_desired_state(
            users=args.users_path, groups=args.groups_path, policies=args.policies_path
        )
    except (OSError, DesiredStateError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    session = boto3.Session(profile_name=args.profile, region_name=args.region)
    notifier = None
    if "users" in kinds:
        if not config.notifier.enabled:
            print(
                "Error: Reconciling users requires --notify-from and --notify-to "
                "(or NOTIFY_SENDER and NOTIFY_RECIPIENT).",
                file=sys.stderr,
            )
            return 1
        notifier = SesNotifier.from_session(session, config.notifier)

    try:
        report = asyncio.run(
            reconcile_account(
                session.client("iam"),
                desired,
                kinds,
                account=args.account,
                config=config.reconciler,
                notifier=notifier,
            )
        )
    except (BotoCoreError, ClientError, ValueError) as exc:
        logger.error(f"Reconciliation of {args.account} failed: {exc}")
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print_report(report)

    if args.json_path:
        with open(args.json_path, "w", encoding="utf-8") as fh:
            json.dump(report_to_dict(report), fh, indent=2, default=str)
        print(f"Report exported to {args.json_path}")

    return 0


__all__ = ["main", "parse_args"]
