"""Helpers shared by the activation and authentication protocols."""

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from warden.services.ports import ResourceStore, TokenIssuer

logger = logging.getLogger(__name__)

_ResourceT = TypeVar("_ResourceT")

SuccessCallback = Callable[[_ResourceT], Awaitable[Any] | Any]


def is_blank(value: str | None) -> bool:
    """Whether a presented identifier or token is missing or whitespace."""
    return value is None or not value.strip()


async def unique_resource_token(
    store: ResourceStore[Any],
    field: str,
    issuer: TokenIssuer,
) -> str:
    """Generate a token no resource holds yet in ``field``.

    Args:
        store: Resource store used for the uniqueness check.
        field: Token column (e.g. "activation_token").
        issuer: Token source, called until a free value comes back.

    Returns:
        A token value unused in ``field``.
    """
    while True:
        token = issuer.generate()
        if not await store.value_taken(field, token):
            return token
        logger.debug("Generated %s collided, retrying", field)


async def run_callback(
    callback: SuccessCallback[_ResourceT] | None,
    resource: _ResourceT,
) -> None:
    """Invoke a success callback, awaiting it if it is a coroutine."""
    if callback is None:
        return
    result = callback(resource)
    if inspect.isawaitable(result):
        await result
