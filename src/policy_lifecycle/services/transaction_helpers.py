# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Transaction helper patterns for safe database operations.

These helpers run inside a transaction opened by the calling service; they
never open their own top-level transaction.
"""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import asyncpg
from beartype import beartype

from ..core.errors import TransientError
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result

T = TypeVar("T")

logger = get_logger(__name__)


@beartype
def transient_error(operation: str, exc: BaseException) -> TransientError:
    """Describe an infrastructure failure for the caller's retry policy."""
    logger.warning("Transient failure during %s: %r", operation, exc)
    return TransientError(
        f"Temporary failure during {operation}; the request may be retried"
    )


@beartype
async def with_unique_value(
    conn: Any,
    generate: Callable[[], str],
    write: Callable[[Any, str], Awaitable[T]],
    *,
    constraint: str,
    max_attempts: int,
) -> Result[T, TransientError]:
    """Write a row keyed by a generated value, regenerating on collision.

    Each attempt runs in a savepoint so a unique violation on ``constraint``
    rolls back only that attempt and leaves the surrounding transaction
    usable. Violations of any other constraint propagate.

    Args:
        conn: Connection holding the surrounding transaction
        generate: Produces a fresh candidate value
        write: Performs the INSERT or UPDATE with ``(conn, value)``
        constraint: Name of the unique constraint guarding the value
        max_attempts: Upper bound on candidate values tried

    Returns:
        Result containing the write's return value, or a transient error when
        every candidate collided
    """
    for attempt in range(1, max_attempts + 1):
        value = generate()
        try:
            async with conn.transaction():
                return Ok(await write(conn, value))
        except asyncpg.UniqueViolationError as exc:
            if getattr(exc, "constraint_name", None) != constraint:
                raise
            logger.info(
                "Generated value collided on %s (attempt %d/%d)",
                constraint,
                attempt,
                max_attempts,
            )

    return Err(
        TransientError(
            f"Could not generate a unique value for {constraint} "
            f"after {max_attempts} attempts"
        )
    )


class AbortTransaction(Exception):
    """Raised inside a transaction block to roll it back with an error value.

    Returning from inside ``async with db.transaction()`` commits; raising this
    instead discards every statement issued so far, and the service converts
    it back into ``Err(error)`` once outside the block.
    """

    def __init__(self, error: Any) -> None:
        super().__init__(str(error))
        self.error = error
