# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Celery app used to queue lifecycle notifications.

Delivery workers (SMS, email) consume the notification queue; this package
only produces tasks, by name, through ``send_task``.
"""

from celery import Celery

from .core.config import get_settings

POLICY_ISSUED_TASK = "notifications.policy_issued"
CLAIM_FILED_TASK = "notifications.claim_filed"


def create_celery_app() -> Celery:
    """Build the producer-side Celery app from settings."""
    settings = get_settings()
    app = Celery("policy_lifecycle", broker=settings.celery_broker_url)

    app.conf.update(
        # Task routing
        task_routes={
            "notifications.*": {"queue": settings.notification_queue},
        },
        # Task settings
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        # Fire-and-forget: results are never read back
        task_ignore_result=True,
        broker_connection_retry_on_startup=True,
    )
    return app


app = create_celery_app()
