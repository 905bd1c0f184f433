"""Tests for the IAM user reconciler."""

from __future__ import annotations

import base64
import time

import pytest
from botocore.exceptions import ClientError

from iam_reconciler.config import ReconcilerConfig
from iam_reconciler.services.groups import GroupReconciler
from iam_reconciler.services.users import UserReconciler, generate_password
from iam_reconciler.tests.conftest import FakeIam, RecordingNotifier


def _reconciler(iam: FakeIam, notifier: RecordingNotifier, config: ReconcilerConfig) -> UserReconciler:
    return UserReconciler(iam, notifier, GroupReconciler(iam, config), config)


def test_generate_password_is_sixteen_random_bytes() -> None:
    password = generate_password()

    assert len(base64.b64decode(password)) == 16
    assert password != generate_password()


@pytest.mark.asyncio
async def test_create_service_account_gets_access_keys(notifier, config) -> None:
    """Names ending in _keys get an access key pair and never a login profile."""

    keys = {"AccessKey": {"AccessKeyId": "AKIA", "SecretAccessKey": "secret"}}
    iam = FakeIam(create_access_key=keys)
    reconciler = _reconciler(iam, notifier, config)

    result = await reconciler.create_user("svc_keys", "acme")

    assert result == {"UserName": "svc_keys", "Path": ""}
    assert iam.called("create_access_key") == [{"UserName": "svc_keys"}]
    assert iam.called("create_login_profile") == []
    assert notifier.keys == [("svc_keys", keys, "acme")]
    assert reconciler.pending_notifications == []


@pytest.mark.asyncio
async def test_create_interactive_user_gets_login_profile(notifier, config) -> None:
    iam = FakeIam()
    reconciler = _reconciler(iam, notifier, config)

    result = await reconciler.create_user("alice", "acme")

    assert result == {"UserName": "alice", "Path": ""}
    assert iam.called("create_access_key") == []
    [profile] = iam.called("create_login_profile")
    assert profile["UserName"] == "alice"
    assert profile["PasswordResetRequired"] is True

    assert await reconciler.drain_notifications() == []
    assert notifier.passwords == [("alice", profile["Password"], "acme")]
    assert notifier.keys == []


@pytest.mark.asyncio
async def test_create_user_uses_configured_path(notifier) -> None:
    iam = FakeIam()
    reconciler = _reconciler(iam, notifier, ReconcilerConfig(path_prefix="/team/"))

    await reconciler.create_user("alice", "acme")
    await reconciler.drain_notifications()

    assert iam.called("create_user") == [{"UserName": "alice", "Path": "/team/"}]


@pytest.mark.asyncio
async def test_password_notification_failure_is_reported_not_raised(config) -> None:
    notifier = RecordingNotifier(fail_with=RuntimeError("SES is down"))
    iam = FakeIam()
    reconciler = _reconciler(iam, notifier, config)

    result = await reconciler.create_user("alice", "acme")
    failures = await reconciler.drain_notifications()

    assert result == {"UserName": "alice", "Path": ""}
    assert [str(failure) for failure in failures] == ["SES is down"]
    assert reconciler.pending_notifications == []


@pytest.mark.asyncio
async def test_delete_user_removes_groups_and_profile_first(notifier, config) -> None:
    iam = FakeIam(
        list_groups_for_user={"Groups": [{"GroupName": "devs"}, {"GroupName": "ops"}]},
    )
    reconciler = _reconciler(iam, notifier, config)

    result = await reconciler.delete_user("carol")

    assert result == {"UserName": "carol"}
    removed_from = sorted(call["GroupName"] for call in iam.called("remove_user_from_group"))
    assert removed_from == ["devs", "ops"]
    assert iam.called("delete_login_profile") == [{"UserName": "carol"}]
    assert iam.called("delete_access_key") == []
    assert iam.call_names()[-1] == "delete_user"


@pytest.mark.asyncio
async def test_delete_service_account_removes_every_access_key(notifier, config) -> None:
    iam = FakeIam(
        list_groups_for_user={"Groups": []},
        list_access_keys={"AccessKeyMetadata": [{"AccessKeyId": "K1"}, {"AccessKeyId": "K2"}]},
    )
    reconciler = _reconciler(iam, notifier, config)

    await reconciler.delete_user("ci_keys")

    deleted_keys = sorted(call["AccessKeyId"] for call in iam.called("delete_access_key"))
    assert deleted_keys == ["K1", "K2"]
    assert iam.called("delete_login_profile") == []
    assert iam.call_names()[-1] == "delete_user"


@pytest.mark.asyncio
async def test_delete_user_is_not_issued_when_cleanup_fails(notifier, config) -> None:
    def fail(**kwargs):
        raise ClientError({"Error": {"Code": "NoSuchEntity", "Message": "gone"}}, "DeleteLoginProfile")

    iam = FakeIam(list_groups_for_user={"Groups": []}, delete_login_profile=fail)
    reconciler = _reconciler(iam, notifier, config)

    with pytest.raises(ClientError):
        await reconciler.delete_user("carol")

    assert iam.called("delete_user") == []


@pytest.mark.asyncio
async def test_update_creates_missing_and_deletes_obsolete_users(notifier, config) -> None:
    iam = FakeIam(
        list_users={"Users": [{"UserName": "bob_keys"}, {"UserName": "carol"}]},
        list_groups_for_user={"Groups": []},
    )
    reconciler = _reconciler(iam, notifier, config)

    report = await reconciler.update(["alice", "bob_keys"], "acme")
    await reconciler.drain_notifications()

    assert report.created == [{"UserName": "alice", "Path": ""}]
    assert report.deleted == [{"UserName": "carol"}]
    assert iam.called("list_users") == [{"PathPrefix": "/"}]
    assert [call["UserName"] for call in iam.called("create_user")] == ["alice"]
    assert [call["UserName"] for call in iam.called("delete_user")] == ["carol"]
    assert [user for user, _, _ in notifier.passwords] == ["alice"]


@pytest.mark.asyncio
async def test_update_filters_live_users_by_path_prefix(notifier) -> None:
    iam = FakeIam(list_users={"Users": []})
    reconciler = _reconciler(iam, notifier, ReconcilerConfig(path_prefix="/team/"))

    report = await reconciler.update([], "acme")

    assert iam.called("list_users") == [{"PathPrefix": "/team/"}]
    assert report.created == [] and report.deleted == []


@pytest.mark.asyncio
async def test_update_fails_when_any_create_fails(notifier, config) -> None:
    def create_user(**kwargs):
        if kwargs["UserName"] == "bad":
            raise ClientError({"Error": {"Code": "EntityAlreadyExists", "Message": "x"}}, "CreateUser")
        return dict(kwargs)

    iam = FakeIam(list_users={"Users": []}, create_user=create_user)
    reconciler = _reconciler(iam, notifier, config)

    with pytest.raises(ClientError):
        await reconciler.update(["good_keys", "bad"], "acme")


@pytest.mark.asyncio
async def test_delete_user_is_not_issued_when_group_removal_fails(notifier, config) -> None:
    def fail(**kwargs):
        raise ClientError({"Error": {"Code": "NoSuchEntity", "Message": "gone"}}, "RemoveUserFromGroup")

    iam = FakeIam(
        list_groups_for_user={"Groups": [{"GroupName": "devs"}]},
        remove_user_from_group=fail,
    )
    reconciler = _reconciler(iam, notifier, config)

    with pytest.raises(ClientError):
        await reconciler.delete_user("carol")

    assert iam.called("delete_login_profile") == [{"UserName": "carol"}]
    assert iam.called("delete_user") == []


@pytest.mark.asyncio
async def test_update_lets_sibling_deletes_finish_after_a_failure(notifier, config) -> None:
    def delete_user(**kwargs):
        if kwargs["UserName"] == "bad":
            raise ClientError({"Error": {"Code": "DeleteConflict", "Message": "x"}}, "DeleteUser")
        time.sleep(0.2)
        return dict(kwargs)

    iam = FakeIam(
        list_users={"Users": [{"UserName": "bad"}, {"UserName": "carol"}]},
        list_groups_for_user={"Groups": []},
        delete_user=delete_user,
    )
    reconciler = _reconciler(iam, notifier, config)

    with pytest.raises(ClientError):
        await reconciler.update([], "acme")

    assert sorted(call["UserName"] for call in iam.called("delete_user")) == ["bad", "carol"]
    assert iam.call_names()[-1] == "delete_user"
