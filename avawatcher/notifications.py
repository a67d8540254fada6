"""Notification helpers for delivering unit events to external channels."""

from __future__ import annotations

import logging
import os
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import List, Protocol

import requests

from .duration import pretty_duration
from .errors import NotifyError
from .models import NewListing, NotificationEvent, UnitChanged, Unlisted

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Protocol defining the notifier contract."""

    def send(self, message: str) -> None:
        ...


@dataclass
class SlackNotifier:
    """Send messages to Slack via Incoming Webhook."""

    webhook_url: str
    timeout: int = 10

    def send(self, message: str) -> None:
        payload = {"text": message}
        response = requests.post(
            self.webhook_url,
            json=payload,
            timeout=self.timeout,
        )
        response.raise_for_status()


@dataclass
class EmailNotifier:
    """Send messages by email over SMTP.

    The first line of the message becomes the subject.
    """

    host: str
    sender: str
    recipient: str
    port: int = 587
    username: str | None = None
    password: str | None = None
    timeout: int = 30

    def send(self, message: str) -> None:
        subject, _, body = message.partition("\n")
        email = EmailMessage()
        email["From"] = self.sender
        email["To"] = self.recipient
        email["Subject"] = subject
        email.set_content(body.strip() or subject)

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            if self.username:
                server.login(self.username, self.password or "")
            server.send_message(email)
        logger.info("Sent email to %s: %s", self.recipient, subject)


@dataclass
class CompositeNotifier:
    """Fan-out notifier that forwards messages to multiple channels.

    Raises :class:`NotifyError` only when every channel failed.
    """

    notifiers: List[Notifier]

    def send(self, message: str) -> None:
        failures = 0
        for notifier in self.notifiers:
            try:
                notifier.send(message)
            except Exception:  # noqa: BLE001
                failures += 1
                logger.exception("Failed to deliver notification via %s", type(notifier).__name__)
        if self.notifiers and failures == len(self.notifiers):
            raise NotifyError("Notification could not be delivered on any channel")


def build_notifier_from_env() -> CompositeNotifier | None:
    """Construct a notifier from environment configuration."""
    notifiers: list[Notifier] = []

    slack_webhook = (os.getenv("SLACK_WEBHOOK") or "").strip()
    if slack_webhook:
        notifiers.append(SlackNotifier(webhook_url=slack_webhook))

    smtp_host = (os.getenv("SMTP_HOST") or "").strip()
    email_to = (os.getenv("EMAIL_TO") or "").strip()
    if smtp_host and email_to:
        notifiers.append(
            EmailNotifier(
                host=smtp_host,
                port=int(os.getenv("SMTP_PORT") or 587),
                sender=(os.getenv("EMAIL_FROM") or email_to).strip(),
                recipient=email_to,
                username=os.getenv("SMTP_USER") or None,
                password=os.getenv("SMTP_PASSWORD") or None,
            )
        )

    if not notifiers:
        return None
    return CompositeNotifier(notifiers=notifiers)


def format_event(event: NotificationEvent) -> str:
    """Render a unit event into a human-friendly notification payload."""
    if isinstance(event, NewListing):
        unit = event.unit
        return "\n".join([
            f"New listing: Apartment {unit.number}",
            unit.display(),
            f"Unit ID: {unit.unit_id}",
        ])

    if isinstance(event, Unlisted):
        record = event.unit
        duration = record.tracked_duration()
        tracked = pretty_duration(duration) if duration is not None else "unknown"
        return "\n".join([
            f"Unlisted: Apartment {record.current.number}",
            record.display(),
            f"Tracked for: {tracked}",
            f"Unit ID: {record.unit_id}",
        ])

    if isinstance(event, UnitChanged):
        change = event.change
        return "\n".join([
            f"Listing changed: Apartment {change.new.number}",
            change.new.display(),
            "",
            event.diff,
        ])

    raise TypeError(f"Unsupported notification event: {event!r}")


__all__ = [
    "CompositeNotifier",
    "EmailNotifier",
    "Notifier",
    "SlackNotifier",
    "build_notifier_from_env",
    "format_event",
]
