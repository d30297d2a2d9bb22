from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from sqlalchemy.exc import SQLAlchemyError

from . import templates
from .mailer import MailTransport

if TYPE_CHECKING:
    from app.tickets.models import Ticket

logger = logging.getLogger(__name__)

AddressSource = Callable[[], Awaitable[str | None]]


class NotificationDispatcher:
    """Render and send the ticket emails.

    Every method returns whether delivery succeeded and never raises, so a mail
    outage cannot fail a ticket operation.
    """

    def __init__(
        self,
        transport: MailTransport,
        *,
        notification_address: AddressSource,
        public_base_url: str,
    ) -> None:
        self._transport = transport
        self._notification_address = notification_address
        self._public_base_url = public_base_url.rstrip("/")

    def rating_url(self, ticket_number: str) -> str:
        return f"{self._public_base_url}/avaliar/{ticket_number}"

    async def notify_new_ticket(self, ticket: Ticket) -> bool:
        try:
            address = await self._notification_address()
        except SQLAlchemyError:
            logger.exception("Could not resolve the notification address")
            return False
        if not address:
            logger.warning("Notification address is not configured; skipping ticket %s", ticket.ticket_number)
            return False
        content = templates.new_ticket_notification(ticket, admin_url=f"{self._public_base_url}/admin")
        return await self._send(address, content)

    async def send_confirmation(self, ticket: Ticket) -> bool:
        return await self._send(ticket.requester_email, templates.ticket_confirmation(ticket))

    async def notify_status_change(self, ticket: Ticket, *, technician_name: str | None = None) -> bool:
        content = templates.status_change_notification(ticket, technician_name=technician_name)
        return await self._send(ticket.requester_email, content)

    async def send_rating_request(self, ticket: Ticket) -> bool:
        content = templates.rating_request(ticket, rating_url=self.rating_url(ticket.ticket_number))
        return await self._send(ticket.requester_email, content)

    async def send_test_email(self, address: str) -> bool:
        return await self._send(address, templates.configuration_check())

    async def _send(self, to: str, content: templates.EmailContent) -> bool:
        try:
            return await self._transport.send(to, content.subject, content.html)
        except (OSError, RuntimeError, SQLAlchemyError, ValueError):
            logger.exception("Mail transport failed for %s", to)
            return False
