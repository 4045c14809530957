"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging outbound emails instead of delivering them.
"""

import logging
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

SUBJECTS = {
    "registration_confirmation": "You're registered for {event_name}",
    "team_registration": "Your team registration for {event_name} is pending",
}


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For development - a mail provider adapter replaces it in production.
    """

    def send_email(self, kind: str, to: str, template_data: Mapping[str, Any]) -> None:
        """
        Log the email at INFO level (simulates delivery).

        Args:
            kind: Template name
            to: Recipient email address
            template_data: Values rendered into the subject
        """
        subject = SUBJECTS.get(kind, kind).format_map(_Defaulting(template_data))
        logger.info("[EMAIL] To: %s Kind: %s Subject: %s", to, kind, subject)


class _Defaulting(dict):
    def __missing__(self, key: str) -> str:
        return ""
