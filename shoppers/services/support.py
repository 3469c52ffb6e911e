import logging
from datetime import datetime, timezone
from typing import List, Optional
from fastapi import HTTPException
from sqlalchemy import func
from sqlmodel import Session, select

from shoppers.core.filters import FilterBuilder, to_clause
from shoppers.core.pagination import Page
from shoppers.domain import support as rules
from shoppers.domain.support import SenderType, SupportCategory, SupportStatus
from shoppers.models.order import Order
from shoppers.models.support import SupportMessage, SupportTicket
from shoppers.models.user import User

logger = logging.getLogger(__name__)

class SupportService:
    def __init__(self, session: Session):
        self.session = session

    def categories(self) -> List[dict]:
        return [{"value": c.value, "label": rules.category_label(c)} for c in SupportCategory]

    def create_ticket(self, user_id: int, subject: str, description: str, category: str,
                      priority: str, order_number: Optional[str] = None) -> SupportTicket:
        if order_number:
            order = self.session.exec(
                select(Order).where(Order.order_number == order_number, Order.user_id == user_id)
            ).first()
            if not order:
                raise HTTPException(status_code=404, detail="Order not found or does not belong to you")

        ticket = SupportTicket(
            ticket_id=rules.generate_ticket_id(),
            user_id=user_id,
            order_number=order_number,
            subject=subject,
            description=description,
            category=category,
            priority=priority,
        )
        ticket.messages.append(SupportMessage(sender_id=user_id, sender_type=SenderType.USER.value, message=description))
        self.session.add(ticket)
        self.session.commit()
        self.session.refresh(ticket)
        logger.info("Support ticket %s opened by user %s", ticket.ticket_id, user_id)
        return ticket

    def list_user_tickets(self, user_id: int, page: Page, status: Optional[str] = None,
                          category: Optional[str] = None) -> tuple[List[SupportTicket], int]:
        return self._list(page, FilterBuilder().equals("user_id", user_id).equals("status", status)
                          .equals("category", category))

    def list_tickets(self, page: Page, status: Optional[str] = None, priority: Optional[str] = None,
                     category: Optional[str] = None, assigned_to: Optional[int] = None,
                     search: Optional[str] = None) -> tuple[List[SupportTicket], int]:
        return self._list(
            page,
            FilterBuilder().equals("status", status).equals("priority", priority).equals("category", category)
            .equals("assigned_to", assigned_to).text(search, "ticket_id", "subject", "order_number"),
        )

    def _list(self, page: Page, builder: FilterBuilder) -> tuple[List[SupportTicket], int]:
        clause = to_clause(builder.build(), SupportTicket)
        total = self.session.exec(select(func.count()).select_from(SupportTicket).where(clause)).one()
        tickets = self.session.exec(
            select(SupportTicket).where(clause).order_by(SupportTicket.created_at.desc(), SupportTicket.id.desc())
            .offset(page.offset).limit(page.limit)
        ).all()
        return tickets, total

    def status_stats(self) -> dict:
        rows = self.session.exec(
            select(SupportTicket.status, func.count()).group_by(SupportTicket.status)
        ).all()
        stats = {s.value: 0 for s in SupportStatus}
        stats.update({status: count for status, count in rows})
        return stats

    def get_ticket(self, ticket_id: str, user_id: Optional[int] = None) -> SupportTicket:
        query = select(SupportTicket).where(SupportTicket.ticket_id == ticket_id)
        if user_id is not None:
            query = query.where(SupportTicket.user_id == user_id)
        ticket = self.session.exec(query).first()
        if not ticket:
            raise HTTPException(status_code=404, detail="Support ticket not found")
        return ticket

    def add_message(self, ticket_id: str, sender: User, message: str, as_agent: bool = False) -> SupportTicket:
        ticket = self.get_ticket(ticket_id, None if as_agent else sender.id)
        check = rules.can_add_message(ticket.status)
        if not check:
            raise HTTPException(status_code=400, detail=check.error)

        sender_type = SenderType.AGENT if as_agent else SenderType.USER
        ticket.messages.append(SupportMessage(sender_id=sender.id, sender_type=sender_type.value, message=message))
        ticket.status = rules.after_message(ticket.status, sender_type).value
        return self._save(ticket)

    def close_ticket(self, ticket_id: str, user_id: int) -> SupportTicket:
        ticket = self.get_ticket(ticket_id, user_id)
        check = rules.can_close(ticket.status)
        if not check:
            raise HTTPException(status_code=400, detail=check.error)
        self._set_status(ticket, SupportStatus.CLOSED)
        return self._save(ticket)

    def reopen_ticket(self, ticket_id: str, user_id: int) -> SupportTicket:
        ticket = self.get_ticket(ticket_id, user_id)
        check = rules.can_reopen(ticket.status)
        if not check:
            raise HTTPException(status_code=400, detail=check.error)
        self._set_status(ticket, SupportStatus.OPEN)
        return self._save(ticket)

    def admin_update(self, ticket_id: str, status: Optional[str] = None, priority: Optional[str] = None,
                     assigned_to: Optional[int] = None) -> SupportTicket:
        ticket = self.get_ticket(ticket_id)
        if status:
            self._set_status(ticket, SupportStatus(status))
        if priority:
            ticket.priority = priority
        if assigned_to is not None:
            agent = self.session.get(User, assigned_to)
            if not agent or not agent.is_admin:
                raise HTTPException(status_code=400, detail="Tickets can only be assigned to admin users")
            ticket.assigned_to = assigned_to
            ticket.status = rules.after_assignment(ticket.status).value
        return self._save(ticket)

    def _set_status(self, ticket: SupportTicket, status: SupportStatus):
        ticket.status = status.value
        now = datetime.now(timezone.utc)
        if status == SupportStatus.RESOLVED:
            ticket.resolved_at = now
        elif status == SupportStatus.CLOSED:
            ticket.closed_at = now
        elif status == SupportStatus.OPEN:
            ticket.resolved_at = None
            ticket.closed_at = None

    def _save(self, ticket: SupportTicket) -> SupportTicket:
        ticket.updated_at = datetime.now(timezone.utc)
        self.session.add(ticket)
        self.session.commit()
        self.session.refresh(ticket)
        return ticket
