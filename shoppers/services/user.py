import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional
from fastapi import HTTPException
from sqlalchemy import func
from sqlmodel import Session, select

from shoppers.core.filters import FilterBuilder, to_clause
from shoppers.core.pagination import Page
from shoppers.models.user import User

logger = logging.getLogger(__name__)

class UserService:
    def __init__(self, session: Session):
        self.session = session

    def get_user_by_id(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def list_users(self, page: Page, search: Optional[str] = None, role: Optional[str] = None,
                   is_active: Optional[bool] = None) -> tuple[List[User], int]:
        clause = to_clause(
            FilterBuilder().text(search, "name", "email", "phone").equals("role", role)
            .equals("is_active", is_active).build(),
            User,
        )
        total = self.session.exec(select(func.count()).select_from(User).where(clause)).one()
        users = self.session.exec(
            select(User).where(clause).order_by(User.created_at.desc()).offset(page.offset).limit(page.limit)
        ).all()
        return users, total

    def export_users(self) -> List[User]:
        return self.session.exec(select(User).order_by(User.created_at.desc(), User.id.desc())).all()

    def update_profile(self, user: User, name: Optional[str] = None, phone: Optional[str] = None) -> User:
        if name is not None:
            user.name = name
        if phone is not None:
            user.phone = phone
        user.updated_at = datetime.now(timezone.utc)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def update_user_status(self, user_id: int, is_active: Optional[bool] = None, role: Optional[str] = None) -> User:
        user = self.get_user_by_id(user_id)

        if is_active is not None:
            user.is_active = is_active
        if role is not None:
            user.role = role
        user.updated_at = datetime.now(timezone.utc)

        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.info("User %s updated: active=%s role=%s", user.id, user.is_active, user.role)
        return user

    # Addresses are stored on the user row as a JSON list
    def add_address(self, user: User, address: dict) -> List[dict]:
        addresses = [dict(a) for a in user.addresses or []]
        address = dict(address, id=uuid.uuid4().hex[:12])
        if address.get("is_default") or not addresses:
            for a in addresses:
                a["is_default"] = False
            address["is_default"] = True
        addresses.append(address)
        return self._save_addresses(user, addresses)

    def update_address(self, user: User, address_id: str, changes: dict) -> List[dict]:
        addresses = [dict(a) for a in user.addresses or []]
        target = next((a for a in addresses if a.get("id") == address_id), None)
        if target is None:
            raise HTTPException(status_code=404, detail="Address not found")
        target.update({k: v for k, v in changes.items() if v is not None})
        if changes.get("is_default"):
            for a in addresses:
                a["is_default"] = a is target
        return self._save_addresses(user, addresses)

    def delete_address(self, user: User, address_id: str) -> List[dict]:
        addresses = [dict(a) for a in user.addresses or []]
        remaining = [a for a in addresses if a.get("id") != address_id]
        if len(remaining) == len(addresses):
            raise HTTPException(status_code=404, detail="Address not found")
        if remaining and not any(a.get("is_default") for a in remaining):
            remaining[0]["is_default"] = True
        return self._save_addresses(user, remaining)

    def _save_addresses(self, user: User, addresses: List[dict]) -> List[dict]:
        # Reassign so SQLAlchemy notices the JSON change
        user.addresses = addresses
        user.updated_at = datetime.now(timezone.utc)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user.addresses
