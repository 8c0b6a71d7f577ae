"""
Templated email for investor-facing notices.

Investors have no internal user account, so email is the only channel that
reaches them.  ``EmailSender.send_templated(to, template_key, model)`` is the
single contract the dispatcher uses; implementations raise on failure and
the dispatcher owns the error boundary.

Senders:
    SmtpEmailSender     -- stdlib ``smtplib`` delivery for production.
    LoggingEmailSender  -- renders and logs only (disabled email).
    RecordingEmailSender -- keeps rendered messages in memory (tests).
"""

from __future__ import annotations

import smtplib
import ssl
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from email.message import EmailMessage
from string import Template
from typing import Any, Protocol, runtime_checkable

from estate_kernel.logging_config import get_logger

logger = get_logger("services.email")


@dataclass(frozen=True)
class RenderedEmail:
    to: str
    template_key: str
    subject: str
    body: str


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    body: str


_SIGNATURE = "\n\nBest regards,\nThe Estate Team\n"

TEMPLATES: dict[str, EmailTemplate] = {
    "ContractActivated": EmailTemplate(
        subject="Contract Activated - $contract_code",
        body=(
            "Your contract $contract_code has been activated and is now in force.\n"
            "Installment payments ($installment_count scheduled) will begin "
            "according to the agreed schedule."
        ),
    ),
    "InstallmentOverdue": EmailTemplate(
        subject="Payment Overdue - Installment #$installment_number",
        body=(
            "An installment payment is overdue. Please make your payment as soon "
            "as possible.\n\n"
            "Contract: $contract_code\n"
            "Installment #: $installment_number\n"
            "Amount Due: $amount SAR\n"
            "Due Date: $due_date"
        ),
    ),
    "GenericNotification": EmailTemplate(
        subject="$title",
        body="$message",
    ),
}

_FALLBACK_SUBJECT = "Notification from the Estate Platform"


def render_template(
    to: str,
    template_key: str,
    model: Mapping[str, Any],
) -> RenderedEmail:
    """Render ``template_key`` with ``model``.

    Unknown keys fall back to the generic template under a fixed subject;
    missing placeholders are left in place rather than raising.
    """
    template = TEMPLATES.get(template_key)
    values = {k: "" if v is None else str(v) for k, v in model.items()}
    if template is None:
        generic = TEMPLATES["GenericNotification"]
        return RenderedEmail(
            to=to,
            template_key=template_key,
            subject=_FALLBACK_SUBJECT,
            body=Template(generic.body).safe_substitute(values) + _SIGNATURE,
        )
    return RenderedEmail(
        to=to,
        template_key=template_key,
        subject=Template(template.subject).safe_substitute(values),
        body=Template(template.body).safe_substitute(values) + _SIGNATURE,
    )


@runtime_checkable
class EmailSender(Protocol):
    def send_templated(
        self,
        to: str,
        template_key: str,
        model: Mapping[str, Any],
    ) -> None: ...


class LoggingEmailSender:
    """Email disabled: render and log what would have been sent."""

    def send_templated(self, to, template_key, model) -> None:
        email = render_template(to, template_key, model)
        logger.info(
            "email_suppressed",
            extra={"to": email.to, "template_key": template_key, "subject": email.subject},
        )


class RecordingEmailSender:
    """Keeps every rendered email in ``sent``. FOR TESTING ONLY."""

    def __init__(self) -> None:
        self.sent: list[RenderedEmail] = []
        self._lock = threading.Lock()

    def send_templated(self, to, template_key, model) -> None:
        email = render_template(to, template_key, model)
        with self._lock:
            self.sent.append(email)

    def for_template(self, template_key: str) -> list[RenderedEmail]:
        return [e for e in self.sent if e.template_key == template_key]


@dataclass(frozen=True)
class SmtpSettings:
    host: str = "localhost"
    port: int = 587
    username: str = ""
    password: str = ""
    use_tls: bool = True
    from_address: str = "noreply@estate.local"
    timeout_seconds: float = 30.0


class SmtpEmailSender:
    """Deliver rendered templates over SMTP.

    One connection per message; the dispatcher is low volume.
    """

    def __init__(self, settings: SmtpSettings):
        self._settings = settings

    def send_templated(self, to, template_key, model) -> None:
        email = render_template(to, template_key, model)

        msg = EmailMessage()
        msg["From"] = self._settings.from_address
        msg["To"] = email.to
        msg["Subject"] = email.subject
        msg.set_content(email.body)

        s = self._settings
        with smtplib.SMTP(s.host, s.port, timeout=s.timeout_seconds) as server:
            if s.use_tls:
                server.starttls(context=ssl.create_default_context())
            if s.username and s.password:
                server.login(s.username, s.password)
            server.send_message(msg)

        logger.info(
            "email_sent",
            extra={"to": email.to, "template_key": template_key, "subject": email.subject},
        )
