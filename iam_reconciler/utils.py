"""Shared helpers for talking to AWS from the reconcilers."""
from __future__ import annotations

import asyncio
from functools import partial
from typing import Any, Awaitable, Iterable, Iterator, List, TypeVar

import boto3
from botocore.exceptions import OperationNotPageableError

T = TypeVar("T")


def safe_paginate(client: boto3.client, method_name: str, result_key: str, **kwargs) -> Iterator[dict]:
    """Iterate through paginated boto3 results while handling pagination gaps."""

    try:
        paginator = client.get_paginator(method_name)
    except OperationNotPageableError:
        response = getattr(client, method_name)(**kwargs)
        for item in response.get(result_key, []):
            yield item
        return

    for page in paginator.paginate(**kwargs):
        for item in page.get(result_key, []):
            yield item


async def call(client: boto3.client, method_name: str, **kwargs) -> Any:
    """Run a blocking boto3 client call on the loop's default executor."""

    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(getattr(client, method_name), **kwargs))


async def paginate(client: boto3.client, method_name: str, result_key: str, **kwargs) -> List[dict]:
    """Collect every item of a paginated listing without blocking the loop."""

    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None, lambda: list(safe_paginate(client, method_name, result_key, **kwargs))
    )


async def gather_all(*aws: Awaitable[Any]) -> List[Any]:
    """Run *aws* concurrently and return their results in order.

    Every operation runs to completion before the first failure, in argument
    order, is raised. Siblings of a failed operation are never cancelled.
    """

    if not aws:
        return []
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    await asyncio.wait(tasks)
    for task in tasks:
        if task.exception() is not None:
            raise task.exception()
    return [task.result() for task in tasks]


def unique(items: Iterable[T]) -> List[T]:
    """Return *items* without duplicates, keeping first-seen order."""

    return list(dict.fromkeys(items))


__all__ = ["call", "gather_all", "paginate", "safe_paginate", "unique"]
