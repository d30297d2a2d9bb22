"""Email notifications sent to staff and requesters."""

from .dispatcher import NotificationDispatcher
from .mailer import MailConfig, MailTransport, SmtpMailTransport

__all__ = ["MailConfig", "MailTransport", "NotificationDispatcher", "SmtpMailTransport"]
