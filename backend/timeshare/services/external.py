"""Deadline-bounded calls to the PMS and the payment gateway."""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from timeshare.billing.gateway import PaymentError
from timeshare.errors import ExternalFailure
from timeshare.pms.base import PmsError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_external(awaitable: Awaitable[T], *, timeout: float, service: str, operation: str) -> T:
    """Await ``awaitable`` for at most ``timeout`` seconds.

    Timeouts and adapter errors surface as :class:`ExternalFailure`; the
    caller's transaction rolls back when it propagates.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("%s %s timed out after %.1fs", service, operation, timeout)
        raise ExternalFailure(
            f"{service} {operation} timed out",
            service=service,
            operation=operation,
            retryable=True,
        ) from None
    except (PmsError, PaymentError) as exc:
        logger.warning("%s %s failed: %s", service, operation, exc)
        raise ExternalFailure(
            f"{service} {operation} failed",
            service=service,
            operation=operation,
            retryable=getattr(exc, "retryable", False),
        ) from exc
