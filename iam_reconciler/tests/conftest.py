"""Shared fixtures: an in-memory IAM client and a recording notifier."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Tuple

import pytest
from botocore.exceptions import OperationNotPageableError


PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


from iam_reconciler.config import ReconcilerConfig
from iam_reconciler.notifier import Notifier


class FakeIam:
    """Stand-in for a boto3 IAM client.

    Every call is recorded. Methods listed in ``responses`` return the given
    value (or call it with the request); any other method echoes its request
    parameters back as the response.
    """

    def __init__(self, **responses: Any) -> None:
        self.responses: Dict[str, Any] = responses
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def get_paginator(self, method_name: str) -> None:
        raise OperationNotPageableError(operation_name=method_name)

    def __getattr__(self, method_name: str) -> Callable[..., Any]:
        if method_name.startswith("_"):
            raise AttributeError(method_name)

        def method(**kwargs: Any) -> Any:
            self.calls.append((method_name, kwargs))
            response = self.responses.get(method_name)
            if callable(response):
                return response(**kwargs)
            if response is None:
                return dict(kwargs)
            return response

        return method

    def called(self, method_name: str) -> List[Dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == method_name]

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]


class RecordingNotifier(Notifier):
    """Notifier that remembers what it was asked to send."""

    def __init__(self, fail_with: BaseException | None = None) -> None:
        self.fail_with = fail_with
        self.passwords: List[Tuple[str, str, str]] = []
        self.keys: List[Tuple[str, Mapping[str, Any], str]] = []

    async def send_user_credentials(self, user: str, password: str, account: str) -> Any:
        if self.fail_with is not None:
            raise self.fail_with
        self.passwords.append((user, password, account))
        return {"MessageId": f"password-{user}"}

    async def send_programmatic_access_keys(
        self, user: str, credentials: Mapping[str, Any], account: str
    ) -> Any:
        if self.fail_with is not None:
            raise self.fail_with
        self.keys.append((user, credentials, account))
        return {"MessageId": f"keys-{user}"}


@pytest.fixture
def config() -> ReconcilerConfig:
    return ReconcilerConfig(path_prefix="")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
