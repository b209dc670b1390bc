"""Kestra workflow orchestration boundary."""

from concierge.boundary.kestra.kestra_client import KestraClient

__all__ = ["KestraClient"]
