# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Notifier that queues lifecycle notifications as Celery tasks."""

import asyncio
from typing import Any
from uuid import UUID

from beartype import beartype
from celery import Celery

from ..celery_app import CLAIM_FILED_TASK, POLICY_ISSUED_TASK
from ..core.config import get_settings
from ..core.logging_utils import get_logger
from ..models.claim import Claim
from ..models.order import Order

logger = get_logger(__name__)


class QueuedNotifier:
    """Fire-and-forget ``Notifier`` backed by the notification queue.

    Publishing blocks on the broker connection, so it runs in a worker thread
    to keep the event loop free.
    """

    def __init__(self, app: Celery | None = None, queue: str | None = None) -> None:
        """Initialize notifier.

        Args:
            app: Celery app to publish with (defaults to the package app)
            queue: Queue name (defaults to the configured notification queue)
        """
        if app is None:
            from ..celery_app import app as default_app

            app = default_app
        self._app = app
        self._queue = queue or get_settings().notification_queue

    @beartype
    async def notify_policy_issued(self, user_id: UUID, order: Order, brand: str) -> None:
        """Queue the policy-issued message for the order owner."""
        await self._enqueue(
            POLICY_ISSUED_TASK,
            {
                "user_id": str(user_id),
                "brand": brand,
                "order_id": str(order.id),
                "order_reference": order.reference_code,
                "policy_number": order.policy_number,
                "policy_start_date": (
                    order.policy_start_date.isoformat()
                    if order.policy_start_date
                    else None
                ),
                "policy_end_date": (
                    order.policy_end_date.isoformat() if order.policy_end_date else None
                ),
                "email": order.email,
                "phone": order.phone,
            },
        )

    @beartype
    async def notify_claim_filed(self, user_id: UUID, claim: Claim, brand: str) -> None:
        """Queue the claim-received message for the policy owner."""
        await self._enqueue(
            CLAIM_FILED_TASK,
            {
                "user_id": str(user_id),
                "brand": brand,
                "claim_id": str(claim.id),
                "claim_reference": claim.reference_code,
                "policy_number": claim.policy_number,
                "claimed_amount": str(claim.claimed_amount),
            },
        )

    async def _enqueue(self, task_name: str, payload: dict[str, Any]) -> None:
        await asyncio.to_thread(
            self._app.send_task, task_name, kwargs=payload, queue=self._queue
        )
        logger.info("Queued %s on %s", task_name, self._queue)
