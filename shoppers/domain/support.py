import random
import string
import time
from enum import Enum

from shoppers.domain.result import Result


class SupportCategory(str, Enum):
    ORDER_ISSUE = "order_issue"
    PAYMENT_ISSUE = "payment_issue"
    PRODUCT_ISSUE = "product_issue"
    DELIVERY_ISSUE = "delivery_issue"
    RETURN_REFUND = "return_refund"
    ACCOUNT_ISSUE = "account_issue"
    GENERAL_INQUIRY = "general_inquiry"


class SupportPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class SupportStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    WAITING_FOR_CUSTOMER = "waiting_for_customer"
    RESOLVED = "resolved"
    CLOSED = "closed"


class SenderType(str, Enum):
    USER = "user"
    AGENT = "agent"


# (current status, event) -> next status
TRANSITIONS = {
    (SupportStatus.WAITING_FOR_CUSTOMER, "agent_message"): SupportStatus.IN_PROGRESS,
    (SupportStatus.IN_PROGRESS, "user_message"): SupportStatus.WAITING_FOR_CUSTOMER,
    (SupportStatus.OPEN, "assign"): SupportStatus.IN_PROGRESS,
}


def after_message(status: SupportStatus, sender: SenderType) -> SupportStatus:
    event = "agent_message" if sender == SenderType.AGENT else "user_message"
    return TRANSITIONS.get((SupportStatus(status), event), SupportStatus(status))


def after_assignment(status: SupportStatus) -> SupportStatus:
    return TRANSITIONS.get((SupportStatus(status), "assign"), SupportStatus(status))


def can_add_message(status: SupportStatus) -> Result:
    if SupportStatus(status) == SupportStatus.CLOSED:
        return Result.failure("Cannot add message to closed ticket")
    return Result.success()


def can_close(status: SupportStatus) -> Result:
    if SupportStatus(status) == SupportStatus.CLOSED:
        return Result.failure("Ticket is already closed")
    return Result.success()


def can_reopen(status: SupportStatus) -> Result:
    if SupportStatus(status) != SupportStatus.CLOSED:
        return Result.failure("Only closed tickets can be reopened")
    return Result.success()


def generate_ticket_id() -> str:
    stamp = str(int(time.time() * 1000))[-6:]
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"TKT{stamp}{suffix}"


def category_label(category: SupportCategory) -> str:
    return category.value.replace("_", " ").title()
