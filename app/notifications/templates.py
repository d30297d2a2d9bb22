"""HTML email bodies rendered from the Jinja2 templates in ``email_templates/``.

Autoescaping is on for every template; requester input ends up in staff inboxes.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from app.tickets.state import TicketStatus, Urgency

if TYPE_CHECKING:
    from app.tickets.models import Ticket

TEMPLATES_DIR = Path(__file__).resolve().parent / "email_templates"

_URGENCY_COLORS: dict[Urgency, str] = {
    Urgency.LOW: "#10b981",
    Urgency.MEDIUM: "#f59e0b",
    Urgency.HIGH: "#ef4444",
}

_STATUS_COLORS: dict[TicketStatus, str] = {
    TicketStatus.OPEN: "#3b82f6",
    TicketStatus.IN_PROGRESS: "#f59e0b",
    TicketStatus.FINALIZED: "#10b981",
}

environment = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html"]),
    undefined=StrictUndefined,
    trim_blocks=True,
)


@dataclass(slots=True, frozen=True)
class EmailContent:
    subject: str
    html: str


def _render(template_name: str, *, title: str, color: str, footer: str, **context: Any) -> str:
    template = environment.get_template(template_name)
    return template.render(title=title, color=color, footer=footer, **context)


def new_ticket_notification(ticket: Ticket, *, admin_url: str) -> EmailContent:
    html = _render(
        "new_ticket.html",
        title="Novo Chamado de Manutenção",
        color="#2563eb",
        footer="Notificação Automática",
        ticket=ticket,
        urgency_color=_URGENCY_COLORS[ticket.urgency],
        admin_url=admin_url,
    )
    return EmailContent(subject=f"Novo Chamado #{ticket.ticket_number} - {ticket.problem_type.label}", html=html)


def ticket_confirmation(ticket: Ticket) -> EmailContent:
    html = _render(
        "confirmation.html",
        title="Chamado Recebido",
        color="#10b981",
        footer="Confirmação Automática",
        ticket=ticket,
    )
    return EmailContent(subject=f"Chamado #{ticket.ticket_number} Recebido", html=html)


def status_change_notification(ticket: Ticket, *, technician_name: str | None = None) -> EmailContent:
    html = _render(
        "status_change.html",
        title="Atualização de Status",
        color=_STATUS_COLORS[ticket.status],
        footer="Notificação Automática",
        ticket=ticket,
        technician_name=technician_name,
    )
    return EmailContent(subject=f"Chamado #{ticket.ticket_number} - Status: {ticket.status.label}", html=html)


def rating_request(ticket: Ticket, *, rating_url: str) -> EmailContent:
    html = _render(
        "rating_request.html",
        title="Sua Opinião é Importante",
        color="#fbbf24",
        footer="Solicitação de Avaliação",
        ticket=ticket,
        rating_url=rating_url,
    )
    return EmailContent(subject=f"Avalie o Serviço - Chamado #{ticket.ticket_number}", html=html)


def configuration_check() -> EmailContent:
    html = _render(
        "configuration_check.html",
        title="Teste de E-mail",
        color="#2563eb",
        footer="Teste de Configuração",
    )
    return EmailContent(subject="Teste de Configuração de E-mail", html=html)
