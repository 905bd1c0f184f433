"""Delivery of generated credentials to the account operator."""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping

import boto3

from .config import NotifierConfig
from .utils import call

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Abstract channel for credential notifications."""

    @abstractmethod
    async def send_user_credentials(self, user: str, password: str, account: str) -> Any:
        """Send the initial console password of *user*."""
        pass

    @abstractmethod
    async def send_programmatic_access_keys(
        self, user: str, credentials: Mapping[str, Any], account: str
    ) -> Any:
        """Send the access key pair created for *user*."""
        pass


class SesNotifier(Notifier):
    """Email credentials through Amazon SES."""

    def __init__(self, ses: boto3.client, config: NotifierConfig):
        if not config.enabled:
            raise ValueError("SES notifications need both a sender and a recipient address")
        self.ses = ses
        self.config = config

    @classmethod
    def from_session(cls, session: boto3.session.Session, config: NotifierConfig) -> "SesNotifier":
        return cls(session.client("ses", region_name=config.region), config)

    def _message(self, subject: str, body: str) -> Dict[str, Any]:
        return {
            "Source": self.config.sender,
            "Destination": {"ToAddresses": [self.config.recipient]},
            "Message": {
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": {"Text": {"Data": body, "Charset": "UTF-8"}},
            },
        }

    async def send_user_credentials(self, user: str, password: str, account: str) -> Any:
        body = (
            f"An IAM user has been created for you in the {account} AWS account.\n\n"
            f"User name: {user}\n"
            f"Temporary password: {password}\n\n"
            "You will be asked to change the password on first sign-in.\n"
        )
        logger.info(f"Sending console credentials of {user} to {self.config.recipient}")
        return await call(
            self.ses, "send_email", **self._message(f"[{account}] AWS console access", body)
        )

    async def send_programmatic_access_keys(
        self, user: str, credentials: Mapping[str, Any], account: str
    ) -> Any:
        access_key = credentials.get("AccessKey", credentials)
        body = (
            f"Programmatic access has been created for {user} in the {account} AWS account.\n\n"
            f"Access key ID: {access_key.get('AccessKeyId')}\n"
            f"Secret access key: {access_key.get('SecretAccessKey')}\n"
        )
        logger.info(f"Sending access keys of {user} to {self.config.recipient}")
        return await call(
            self.ses, "send_email", **self._message(f"[{account}] AWS programmatic access", body)
        )


async def drain(tasks: List[asyncio.Task]) -> List[BaseException]:
    """Wait for detached notification *tasks* and return their failures.

    Failures are logged and returned, never raised. *tasks* is emptied.
    """

    if not tasks:
        return []
    results = await asyncio.gather(*tasks, return_exceptions=True)
    failures = [result for result in results if isinstance(result, BaseException)]
    for failure in failures:
        logger.error(f"Credential notification failed: {failure}")
    tasks.clear()
    return failures


__all__ = ["Notifier", "SesNotifier", "drain"]
