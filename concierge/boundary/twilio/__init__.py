"""Twilio SMS boundary."""

from concierge.boundary.twilio.twilio_client import TwilioClient

__all__ = ["TwilioClient"]
