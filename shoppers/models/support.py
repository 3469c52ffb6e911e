from typing import List, Optional
from datetime import datetime, timezone
from sqlmodel import Field, Relationship, SQLModel

from shoppers.domain.support import SupportPriority, SupportStatus, category_label, SupportCategory

class SupportTicket(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    ticket_id: str = Field(unique=True, index=True)  # e.g. TKT123456AB12
    user_id: int = Field(foreign_key="user.id", index=True)
    order_number: Optional[str] = None

    subject: str
    description: str
    category: str
    priority: str = Field(default=SupportPriority.MEDIUM.value)
    status: str = Field(default=SupportStatus.OPEN.value, index=True)

    assigned_to: Optional[int] = Field(default=None, foreign_key="user.id")

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    messages: List["SupportMessage"] = Relationship(
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "SupportMessage.id"}
    )

    def as_api(self, with_messages: bool = True):
        data = {
            "id": self.id,
            "ticketId": self.ticket_id,
            "userId": self.user_id,
            "orderNumber": self.order_number,
            "subject": self.subject,
            "description": self.description,
            "category": self.category,
            "categoryLabel": category_label(SupportCategory(self.category)),
            "priority": self.priority,
            "status": self.status,
            "assignedTo": self.assigned_to,
            "messageCount": len(self.messages),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "resolvedAt": self.resolved_at,
            "closedAt": self.closed_at,
        }
        if with_messages:
            data["messages"] = [m.as_api() for m in self.messages]
        return data


class SupportMessage(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    ticket_id: int = Field(foreign_key="supportticket.id", index=True)
    sender_id: int = Field(foreign_key="user.id")
    sender_type: str  # user | agent
    message: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def as_api(self):
        return {
            "id": self.id,
            "senderId": self.sender_id,
            "senderType": self.sender_type,
            "message": self.message,
            "timestamp": self.created_at,
        }
