"""
Router utility functions.

Background work scheduled by route handlers after they respond.
"""

from concierge.api.routers.router_utils.background_tasks import (
    enrich_webhook_call,
    persist_webhook_result,
    run_batch_calls_background,
    run_booking_background,
    run_notification_background,
    webhook_call_result,
)

__all__ = [
    "enrich_webhook_call",
    "persist_webhook_result",
    "run_batch_calls_background",
    "run_booking_background",
    "run_notification_background",
    "webhook_call_result",
]
