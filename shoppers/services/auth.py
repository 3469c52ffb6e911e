from datetime import datetime, timedelta, timezone
import logging
import random
import string
from typing import Optional
from sqlmodel import Session, func, select
from fastapi import HTTPException, status
from passlib.context import CryptContext
from jose import jwt, JWTError

from shoppers.models.user import User
from shoppers.core.config import settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

class AuthService:
    def __init__(self, session: Session):
        self.session = session

    def get_password_hash(self, password: str) -> str:
        return pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        if not hashed_password:
            return False
        return pwd_context.verify(plain_password, hashed_password)

    def create_access_token(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
        to_encode = {
            "sub": str(user.id),
            "role": user.role,
            "is_verified": user.is_verified,
            "exp": expire,
        }
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    def decode_access_token(self, token: str) -> Optional[dict]:
        try:
            payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError:
            return None
        if payload.get("sub") is None:
            return None
        return payload

    def get_user_from_token(self, token: str) -> Optional[User]:
        payload = self.decode_access_token(token)
        if payload is None:
            return None
        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError):
            return None
        return self.session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.email == email)).first() or \
               self.session.exec(select(User).where(func.lower(User.email) == email.lower())).first()

    def register_user(self, email: str, password: str, name: str = None, phone: str = None) -> User:
        user = self.get_user_by_email(email)

        if user and user.password_hash:
            raise HTTPException(status_code=400, detail="Email already registered")

        if user:
            # Complete the placeholder account created by OTP generation
            user.name = name
            user.password_hash = self.get_password_hash(password)
            user.phone = phone
            user.updated_at = datetime.now(timezone.utc)
        else:
            user = User(
                email=email.strip().lower(),
                name=name,
                password_hash=self.get_password_hash(password),
                phone=phone,
                is_active=True,
                is_verified=False,
            )

        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.info("Registered user %s (id=%s)", user.email, user.id)
        return user

    def authenticate_user(self, email: str, password: str) -> tuple[Optional[User], Optional[str]]:
        user = self.get_user_by_email(email)
        if not user:
            return None, "User not found. Please check your email or register a new account."
        if not self.verify_password(password, user.password_hash):
            return None, "Incorrect password. Please try again."
        if not user.is_active:
            return None, "Account is deactivated"

        user.last_login_at = datetime.now(timezone.utc)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user, None

    def generate_otp_for_email(self, email: str) -> str:
        """Generate OTP for email (creates a placeholder user if needed)"""
        user = self.get_user_by_email(email)

        if not user:
            user = User(
                email=email.strip().lower(),
                password_hash="",  # set during registration
                is_active=True,
                is_verified=False,
            )
            self.session.add(user)
            self.session.commit()
            self.session.refresh(user)

        if not user.is_active:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")

        otp = "".join(random.choices(string.digits, k=6))
        user.otp_code = otp
        user.otp_expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)
        self.session.add(user)
        self.session.commit()

        # No gateway configured; the code goes to the log
        logger.info("OTP for %s: %s", user.email, otp)
        return otp

    def verify_otp(self, email: str, otp: str) -> Optional[User]:
        user = self.get_user_by_email(email)
        if not user or not user.otp_code:
            return None

        if user.otp_code != otp:
            return None

        if user.otp_expires_at is None or datetime.now(timezone.utc) > user.otp_expires_at:
            return None

        user.is_verified = True
        user.otp_code = None
        user.otp_expires_at = None
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user
