"""Reconciliation of IAM groups."""
from __future__ import annotations

import logging
from typing import Any, List, Sequence, Union

import boto3

from ..config import ReconcilerConfig
from ..diff import diff
from ..models import DesiredState, GroupSpec, ReconcileReport
from ..utils import call, gather_all, paginate
from . import ReconcileContext, register_reconciler

logger = logging.getLogger(__name__)


class GroupReconciler:
    """Creates and deletes IAM groups to match the desired group list."""

    def __init__(self, iam: boto3.client, config: ReconcilerConfig):
        self.iam = iam
        self.config = config

    async def list_groups(self) -> List[dict]:
        return await paginate(self.iam, "list_groups", "Groups", PathPrefix=self.config.list_prefix)

    async def add_user_to_group(self, user: str, group: str) -> Any:
        logger.info(f"Adding {user} to group {group}")
        return await call(self.iam, "add_user_to_group", GroupName=group, UserName=user)

    async def remove_user_from_group(self, user: str, group: str) -> Any:
        """Remove *user* from *group*; a missing group surfaces as the API's own error."""
        logger.info(f"Removing {user} from group {group}")
        return await call(self.iam, "remove_user_from_group", GroupName=group, UserName=user)

    async def create_group(self, group: Union[GroupSpec, str]) -> Any:
        """Create *group* and add its listed members. Returns the create-group response."""

        if isinstance(group, str):
            group = GroupSpec(name=group)
        logger.info(f"Creating group {group.name}")
        response = await call(self.iam, "create_group", GroupName=group.name, Path=self.config.path_prefix)
        await gather_all(*(self.add_user_to_group(user, group.name) for user in group.members))
        return response

    async def detach_all_policies(self, group: str) -> List[Any]:
        attached = await paginate(
            self.iam, "list_attached_group_policies", "AttachedPolicies", GroupName=group
        )
        return await gather_all(
            *(
                call(self.iam, "detach_group_policy", GroupName=group, PolicyArn=policy["PolicyArn"])
                for policy in attached
            )
        )

    async def _remove_all_members(self, group: str) -> List[Any]:
        members = await paginate(self.iam, "get_group", "Users", GroupName=group)
        return await gather_all(
            *(self.remove_user_from_group(member["UserName"], group) for member in members)
        )

    async def delete_group(self, group: str) -> Any:
        """Empty *group* and detach its managed policies, then delete it."""

        logger.info(f"Deleting group {group}")
        await gather_all(self._remove_all_members(group), self.detach_all_policies(group))
        return await call(self.iam, "delete_group", GroupName=group)

    async def update(self, desired: Sequence[Union[GroupSpec, str]]) -> ReconcileReport:
        """Create missing groups and delete groups that are no longer desired."""

        specs = {
            spec.name: spec
            for spec in (GroupSpec(name=g) if isinstance(g, str) else g for g in desired)
        }
        live = [group["GroupName"] for group in await self.list_groups()]
        delta = diff(specs, live)
        logger.info(
            f"Updating groups: {len(delta.to_create)} to create, {len(delta.to_delete)} to delete"
        )

        created, deleted = await gather_all(
            gather_all(*(self.create_group(specs[name]) for name in delta.to_create)),
            gather_all(*(self.delete_group(name) for name in delta.to_delete)),
        )
        return ReconcileReport(entity="groups", created=list(created), deleted=list(deleted))


@register_reconciler("groups")
async def reconcile_groups(ctx: ReconcileContext, desired: DesiredState) -> ReconcileReport:
    reconciler = ctx.groups or GroupReconciler(ctx.iam, ctx.config)
    return await reconciler.update(desired.groups)


__all__ = ["GroupReconciler", "reconcile_groups"]
