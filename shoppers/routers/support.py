from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import Field
from sqlmodel import Session

from shoppers.core.pagination import Page
from shoppers.core.responses import ApiModel, envelope
from shoppers.db.session import get_session
from shoppers.domain.support import SupportCategory, SupportPriority, SupportStatus
from shoppers.models.user import User
from shoppers.routers.auth import get_admin_user, get_verified_user
from shoppers.services.support import SupportService

router = APIRouter()

class TicketCreate(ApiModel):
    subject: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=10, max_length=2000)
    category: SupportCategory
    priority: SupportPriority = SupportPriority.MEDIUM
    order_number: Optional[str] = None

class MessageCreate(ApiModel):
    message: str = Field(min_length=1, max_length=2000)

class TicketUpdate(ApiModel):
    status: Optional[SupportStatus] = None
    priority: Optional[SupportPriority] = None
    assigned_to: Optional[int] = None

def get_support_service(session: Session = Depends(get_session)) -> SupportService:
    return SupportService(session)

@router.get("/categories/list")
def read_categories(service: SupportService = Depends(get_support_service)):
    return envelope("Support categories retrieved successfully", service.categories())

# Customer routes

@router.post("/tickets", status_code=201)
def create_ticket(
    data: TicketCreate,
    current_user: User = Depends(get_verified_user),
    service: SupportService = Depends(get_support_service)
):
    ticket = service.create_ticket(
        current_user.id, data.subject, data.description, data.category.value, data.priority.value, data.order_number
    )
    return envelope("Support ticket created successfully", ticket.as_api())

@router.get("/tickets")
def read_my_tickets(
    page: int = 1,
    limit: int = 10,
    status: Optional[SupportStatus] = None,
    category: Optional[SupportCategory] = None,
    current_user: User = Depends(get_verified_user),
    service: SupportService = Depends(get_support_service)
):
    paging = Page(page, limit)
    tickets, total = service.list_user_tickets(
        current_user.id, paging, status.value if status else None, category.value if category else None
    )
    return envelope("Support tickets retrieved successfully", {
        "tickets": [t.as_api(with_messages=False) for t in tickets],
        "pagination": paging.meta(total),
    })

@router.get("/tickets/{ticket_id}")
def read_ticket(ticket_id: str, current_user: User = Depends(get_verified_user),
                service: SupportService = Depends(get_support_service)):
    return envelope("Support ticket retrieved successfully", service.get_ticket(ticket_id, current_user.id).as_api())

@router.post("/tickets/{ticket_id}/messages")
def add_message(
    ticket_id: str,
    data: MessageCreate,
    current_user: User = Depends(get_verified_user),
    service: SupportService = Depends(get_support_service)
):
    ticket = service.add_message(ticket_id, current_user, data.message)
    return envelope("Message added successfully", ticket.as_api())

@router.put("/tickets/{ticket_id}/close")
def close_ticket(ticket_id: str, current_user: User = Depends(get_verified_user),
                 service: SupportService = Depends(get_support_service)):
    return envelope("Ticket closed successfully", service.close_ticket(ticket_id, current_user.id).as_api())

@router.put("/tickets/{ticket_id}/reopen")
def reopen_ticket(ticket_id: str, current_user: User = Depends(get_verified_user),
                  service: SupportService = Depends(get_support_service)):
    return envelope("Ticket reopened successfully", service.reopen_ticket(ticket_id, current_user.id).as_api())

# Agent routes

@router.get("/admin/tickets")
def read_all_tickets(
    page: int = 1,
    limit: int = 20,
    status: Optional[SupportStatus] = None,
    priority: Optional[SupportPriority] = None,
    category: Optional[SupportCategory] = None,
    assigned_to: Optional[int] = None,
    search: Optional[str] = None,
    admin: User = Depends(get_admin_user),
    service: SupportService = Depends(get_support_service)
):
    paging = Page(page, limit)
    tickets, total = service.list_tickets(
        paging,
        status=status.value if status else None,
        priority=priority.value if priority else None,
        category=category.value if category else None,
        assigned_to=assigned_to,
        search=search,
    )
    return envelope("Support tickets retrieved successfully", {
        "tickets": [t.as_api(with_messages=False) for t in tickets],
        "pagination": paging.meta(total),
        "stats": service.status_stats(),
    })

@router.get("/admin/tickets/{ticket_id}")
def read_any_ticket(ticket_id: str, admin: User = Depends(get_admin_user),
                    service: SupportService = Depends(get_support_service)):
    return envelope("Support ticket retrieved successfully", service.get_ticket(ticket_id).as_api())

@router.put("/admin/tickets/{ticket_id}")
def update_ticket(
    ticket_id: str,
    data: TicketUpdate,
    admin: User = Depends(get_admin_user),
    service: SupportService = Depends(get_support_service)
):
    ticket = service.admin_update(
        ticket_id,
        status=data.status.value if data.status else None,
        priority=data.priority.value if data.priority else None,
        assigned_to=data.assigned_to,
    )
    return envelope("Support ticket updated successfully", ticket.as_api())

@router.post("/admin/tickets/{ticket_id}/messages")
def add_agent_message(
    ticket_id: str,
    data: MessageCreate,
    admin: User = Depends(get_admin_user),
    service: SupportService = Depends(get_support_service)
):
    ticket = service.add_message(ticket_id, admin, data.message, as_agent=True)
    return envelope("Message added successfully", ticket.as_api())
