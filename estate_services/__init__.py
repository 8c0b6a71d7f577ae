"""
estate_services -- transaction-owning command surface and side-effect delivery.

    LifecycleCommands       commit one state-machine call, then dispatch
    NotificationDispatcher  in-app notifications and investor email
    email                   templated email senders
"""

from estate_services.commands import LifecycleCommands
from estate_services.email import (
    EmailSender,
    LoggingEmailSender,
    RecordingEmailSender,
    RenderedEmail,
    SmtpEmailSender,
    SmtpSettings,
    render_template,
)
from estate_services.notification_dispatcher import DispatchReport, NotificationDispatcher

__all__ = [
    "DispatchReport",
    "EmailSender",
    "LifecycleCommands",
    "LoggingEmailSender",
    "NotificationDispatcher",
    "RecordingEmailSender",
    "RenderedEmail",
    "SmtpEmailSender",
    "SmtpSettings",
    "render_template",
]
