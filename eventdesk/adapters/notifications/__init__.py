"""Notification adapters - Email and in-app dispatchers."""

from .console import ConsoleEmailSender
from .in_app import StoreNotifier

__all__ = ["ConsoleEmailSender", "StoreNotifier"]
