"""Reconciliation of customer managed IAM policies."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Sequence

import boto3

from ..config import ReconcilerConfig
from ..models import DesiredState, PolicySpec, ReconcileReport
from ..utils import call, gather_all, paginate
from . import ReconcileContext, register_reconciler

logger = logging.getLogger(__name__)


class PolicyReconciler:
    """High level wrapper for customer managed policies.

    Unlike users and groups, policies are not diffed by name: ``update``
    recreates every desired policy and removes every live one.
    """

    def __init__(self, iam: boto3.client, config: ReconcilerConfig):
        self.iam = iam
        self.config = config

    async def list_policies(self) -> List[dict]:
        return await paginate(self.iam, "list_policies", "Policies", Scope="Local")

    async def get_policy(self, name: str) -> List[dict]:
        """Return every listed policy named *name* (a list, possibly empty)."""

        return [policy for policy in await self.list_policies() if policy.get("PolicyName") == name]

    async def detach_from_all_entities(self, policy_arn: str) -> List[Any]:
        """Detach *policy_arn* from every group it is attached to."""

        groups = await paginate(
            self.iam, "list_entities_for_policy", "PolicyGroups", PolicyArn=policy_arn
        )
        return await gather_all(
            *(
                call(self.iam, "detach_group_policy", GroupName=group["GroupName"], PolicyArn=policy_arn)
                for group in groups
            )
        )

    async def remove_policy(self, policy_arn: str) -> Any:
        """Detach *policy_arn* everywhere, then delete it. Detach errors abort the delete."""

        logger.info(f"Removing policy {policy_arn}")
        await self.detach_from_all_entities(policy_arn)
        return await call(self.iam, "delete_policy", PolicyArn=policy_arn)

    def create_policy_request(self, name: str, document: Any) -> Dict[str, str]:
        # Documents are always JSON encoded, so a string document is quoted again.
        return {
            "Path": self.config.path_prefix,
            "PolicyName": name,
            "PolicyDocument": json.dumps(document),
        }

    async def create_policy(self, name: str, document: Any) -> Any:
        logger.info(f"Creating policy {name}")
        return await call(self.iam, "create_policy", **self.create_policy_request(name, document))

    async def update(self, desired: Sequence[PolicySpec]) -> ReconcileReport:
        """Create all *desired* policies and remove all live ones, concurrently."""

        live = await self.list_policies()
        logger.info(
            f"Updating policies: creating {len(desired)}, removing {len(live)}"
        )

        created, deleted = await gather_all(
            gather_all(*(self.create_policy(spec.name, spec.document) for spec in desired)),
            gather_all(*(self.remove_policy(policy["Arn"]) for policy in live)),
        )
        return ReconcileReport(entity="policies", created=list(created), deleted=list(deleted))


@register_reconciler("policies")
async def reconcile_policies(ctx: ReconcileContext, desired: DesiredState) -> ReconcileReport:
    return await PolicyReconciler(ctx.iam, ctx.config).update(desired.policies)


__all__ = ["PolicyReconciler", "reconcile_policies"]
