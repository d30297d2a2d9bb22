from __future__ import annotations

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import Awaitable, Callable, Protocol

from opentelemetry import trace
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(slots=True, frozen=True)
class MailConfig:
    """SMTP parameters resolved for a single delivery."""

    host: str | None
    port: int = 587
    user: str | None = None
    password: str | None = None
    sender_name: str = "Sistema de Manutenção"
    use_tls: bool = True
    timeout: float = 10.0

    @property
    def is_complete(self) -> bool:
        return bool(self.host and self.user and self.password)

    @property
    def sender(self) -> str:
        return formataddr((self.sender_name, self.user or ""))


class MailTransport(Protocol):
    async def send(self, to: str, subject: str, html_body: str) -> bool:
        ...


MailConfigSource = Callable[[], Awaitable[MailConfig]]


class SmtpMailTransport:
    """Deliver HTML email over SMTP from a worker thread.

    The configuration is resolved on every send so changes to the persisted
    settings apply without a restart. Failures are logged and reported as
    ``False``; nothing is raised to the caller.
    """

    def __init__(
        self,
        config_source: MailConfigSource,
        *,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
    ) -> None:
        self._config_source = config_source
        self._smtp_factory = smtp_factory

    async def send(self, to: str, subject: str, html_body: str) -> bool:
        with tracer.start_as_current_span("mail.send") as span:
            span.set_attribute("mail.subject", subject)
            try:
                config = await self._config_source()
            except SQLAlchemyError:
                logger.exception("Could not resolve SMTP configuration")
                return False

            if not config.is_complete:
                logger.error(
                    "Incomplete SMTP configuration (host=%s user=%s password=%s)",
                    bool(config.host),
                    bool(config.user),
                    bool(config.password),
                )
                return False

            try:
                # header values with CR/LF raise ValueError here
                message = self.build_message(config, to=to, subject=subject, html_body=html_body)
                await asyncio.wait_for(asyncio.to_thread(self._deliver, config, message), timeout=config.timeout)
            except (smtplib.SMTPException, OSError, asyncio.TimeoutError, ValueError) as exc:
                logger.error("Failed to send email to %s (%s): %s", to, subject, exc)
                span.record_exception(exc)
                return False

            logger.info("Email sent to %s: %s", to, subject)
            return True

    @staticmethod
    def build_message(config: MailConfig, *, to: str, subject: str, html_body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = config.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content("Este e-mail requer um cliente com suporte a HTML.")
        message.add_alternative(html_body, subtype="html")
        return message

    def _deliver(self, config: MailConfig, message: EmailMessage) -> None:
        with self._smtp_factory(config.host, config.port, timeout=config.timeout) as client:
            if config.use_tls:
                client.starttls()
            client.login(config.user, config.password)
            client.send_message(message)
