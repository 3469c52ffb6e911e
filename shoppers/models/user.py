from typing import Optional
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import JSON
from datetime import datetime, timezone
from enum import Enum

class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

ADMIN_ROLES = (UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value)

class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Basic Info
    name: Optional[str] = None
    email: str = Field(unique=True, index=True)
    phone: Optional[str] = Field(default=None, index=True)
    password_hash: str = ""

    # Saved addresses: list of dicts with name, phone, address_line1, city, state, pincode
    addresses: list = Field(default=[], sa_column=Column(JSON))

    # Account Status
    role: str = Field(default=UserRole.USER.value, index=True)
    is_active: bool = Field(default=True)
    is_verified: bool = Field(default=False)

    # OTP
    otp_code: Optional[str] = None
    otp_expires_at: Optional[datetime] = None

    last_login_at: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "isVerified": self.is_verified,
            "isActive": self.is_active,
            "addresses": self.addresses or [],
            "lastLoginAt": self.last_login_at,
            "createdAt": self.created_at,
        }
