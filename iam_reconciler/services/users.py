"""Reconciliation of IAM users and their credentials."""
from __future__ import annotations

import asyncio
import base64
import logging
import secrets
from typing import Any, List, Sequence, Union

import boto3

from ..config import ReconcilerConfig
from ..diff import diff
from ..models import DesiredState, ReconcileReport, UserSpec
from ..notifier import Notifier, drain
from ..utils import call, gather_all, paginate
from . import ReconcileContext, register_reconciler
from .groups import GroupReconciler

logger = logging.getLogger(__name__)

PASSWORD_BYTES = 16

UserLike = Union[UserSpec, str]


def _spec(user: UserLike) -> UserSpec:
    return user if isinstance(user, UserSpec) else UserSpec.from_name(user)


def generate_password() -> str:
    """Return 16 random bytes, base64 encoded."""

    return base64.b64encode(secrets.token_bytes(PASSWORD_BYTES)).decode("ascii")


class UserReconciler:
    """High level wrapper for IAM users.

    Interactive users get a console login profile with a temporary password.
    Service accounts (names ending in ``_keys``) get an access key pair
    instead. Either credential is handed to the notifier.
    """

    def __init__(
        self,
        iam: boto3.client,
        notifier: Notifier,
        groups: GroupReconciler,
        config: ReconcilerConfig,
    ):
        self.iam = iam
        self.notifier = notifier
        self.groups = groups
        self.config = config
        self.pending_notifications: List[asyncio.Task] = []

    async def list_users(self) -> List[dict]:
        return await paginate(self.iam, "list_users", "Users", PathPrefix=self.config.list_prefix)

    async def generate_login_profile(self, user: str) -> str:
        """Create a login profile that must be reset on first sign-in. Returns the password."""

        password = generate_password()
        await call(
            self.iam,
            "create_login_profile",
            UserName=user,
            Password=password,
            PasswordResetRequired=True,
        )
        return password

    async def generate_access_keys(self, user: str) -> dict:
        return await call(self.iam, "create_access_key", UserName=user)

    async def create_user(self, user: UserLike, account: str) -> Any:
        """Create *user* and provision its credentials.

        Access keys are delivered before this returns. The password email is
        scheduled as a task in :attr:`pending_notifications` and not awaited.
        Returns the raw ``create_user`` response in both cases.
        """

        spec = _spec(user)
        logger.info(f"Creating new user {spec.name}...")
        response = await call(self.iam, "create_user", UserName=spec.name, Path=self.config.path_prefix)

        if spec.is_service_account:
            credentials = await self.generate_access_keys(spec.name)
            logger.info(f"Programmatic keys created for {spec.name}.")
            await self.notifier.send_programmatic_access_keys(spec.name, credentials, account)
            return response

        password = await self.generate_login_profile(spec.name)
        logger.info(f"User {spec.name} created.")
        self.pending_notifications.append(
            asyncio.ensure_future(self.notifier.send_user_credentials(spec.name, password, account))
        )
        return response

    async def list_access_keys(self, user: str) -> List[dict]:
        return await paginate(self.iam, "list_access_keys", "AccessKeyMetadata", UserName=user)

    async def delete_access_keys(self, user: str) -> List[Any]:
        keys = await self.list_access_keys(user)
        return await gather_all(
            *(
                call(self.iam, "delete_access_key", UserName=user, AccessKeyId=key["AccessKeyId"])
                for key in keys
            )
        )

    async def delete_login_profile(self, user: str) -> Any:
        return await call(self.iam, "delete_login_profile", UserName=user)

    async def _leave_all_groups(self, user: str) -> List[Any]:
        memberships = await paginate(self.iam, "list_groups_for_user", "Groups", UserName=user)
        return await gather_all(
            *(self.groups.remove_user_from_group(user, group["GroupName"]) for group in memberships)
        )

    async def _delete_credentials(self, spec: UserSpec) -> Any:
        if spec.is_service_account:
            return await self.delete_access_keys(spec.name)
        return await self.delete_login_profile(spec.name)

    async def delete_user(self, user: UserLike) -> Any:
        """Remove *user* from its groups and delete its credentials, then delete it."""

        spec = _spec(user)
        logger.info(f"Deleting old user {spec.name}...")
        await gather_all(self._leave_all_groups(spec.name), self._delete_credentials(spec))
        return await call(self.iam, "delete_user", UserName=spec.name)

    async def update(self, desired: Sequence[UserLike], account: str) -> ReconcileReport:
        """Create missing users and delete users that are no longer desired."""

        specs = {spec.name: spec for spec in map(_spec, desired)}
        live = [user["UserName"] for user in await self.list_users()]
        delta = diff(specs, live)
        logger.info(
            f"Updating users: to add {delta.to_create}, to delete {delta.to_delete}"
        )

        created, deleted = await gather_all(
            gather_all(*(self.create_user(specs[name], account) for name in delta.to_create)),
            gather_all(*(self.delete_user(name) for name in delta.to_delete)),
        )
        return ReconcileReport(entity="users", created=list(created), deleted=list(deleted))

    async def drain_notifications(self) -> List[BaseException]:
        """Wait for scheduled password emails; returns the ones that failed."""

        return await drain(self.pending_notifications)


@register_reconciler("users")
async def reconcile_users(ctx: ReconcileContext, desired: DesiredState) -> ReconcileReport:
    if ctx.notifier is None:
        raise ValueError("Reconciling users requires a notifier for generated credentials")
    groups = ctx.groups or GroupReconciler(ctx.iam, ctx.config)
    reconciler = UserReconciler(ctx.iam, ctx.notifier, groups, ctx.config)
    try:
        return await reconciler.update(desired.users, ctx.account)
    finally:
        ctx.pending_notifications.extend(reconciler.pending_notifications)


__all__ = ["UserReconciler", "generate_password", "reconcile_users"]
