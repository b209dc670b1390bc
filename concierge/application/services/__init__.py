"""Service orchestrators."""

from .booking_service import BookingService
from .call_result_service import CallResultService, persist_call_result
from .notification_service import NotificationService, UserCallService
from .service_request_service import ServiceRequestService
from .sms_reply_service import SmsReplyService
from .user_service import UserService

__all__ = [
    "BookingService",
    "CallResultService",
    "NotificationService",
    "ServiceRequestService",
    "SmsReplyService",
    "UserCallService",
    "UserService",
    "persist_call_result",
]
