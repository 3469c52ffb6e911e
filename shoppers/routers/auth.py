from fastapi import APIRouter, Depends, HTTPException, status
from typing import Optional
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from pydantic import Field
from sqlmodel import Session

from shoppers.core.responses import ApiModel, envelope
from shoppers.db.session import get_session
from shoppers.models.user import User
from shoppers.services.auth import AuthService

router = APIRouter()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/token")
oauth2_scheme_optional = OAuth2PasswordBearer(tokenUrl="api/auth/token", auto_error=False)


class UserCreate(ApiModel):
    email: str = Field(min_length=3, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=6)
    name: Optional[str] = None
    phone: Optional[str] = None

class LoginRequest(ApiModel):
    email: str
    password: str

class OTPVerify(ApiModel):
    email: str
    code: str

class OTPGenerate(ApiModel):
    email: str

def get_auth_service(session: Session = Depends(get_session)) -> AuthService:
    return AuthService(session)

def _token_payload(service: AuthService, user: User) -> dict:
    return {"accessToken": service.create_access_token(user), "tokenType": "bearer", "user": user.as_api()}

def _login(service: AuthService, email: str, password: str) -> User:
    user, error_message = service.authenticate_user(email, password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error_message,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user

@router.post("/register", status_code=201)
def register(user_in: UserCreate, service: AuthService = Depends(get_auth_service)):
    user = service.register_user(user_in.email, user_in.password, name=user_in.name, phone=user_in.phone)
    return envelope("User registered successfully", _token_payload(service, user))

@router.post("/login")
def login(data: LoginRequest, service: AuthService = Depends(get_auth_service)):
    user = _login(service, data.email, data.password)
    return envelope("Login successful", _token_payload(service, user))

@router.post("/token")
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    service: AuthService = Depends(get_auth_service),
):
    # Plain OAuth2 response shape for the interactive docs
    user = _login(service, form_data.username, form_data.password)
    return {"access_token": service.create_access_token(user), "token_type": "bearer"}

@router.post("/otp/generate")
def generate_otp(data: OTPGenerate, service: AuthService = Depends(get_auth_service)):
    service.generate_otp_for_email(data.email)
    return envelope("OTP sent")

@router.post("/otp/verify")
def verify_otp(data: OTPVerify, service: AuthService = Depends(get_auth_service)):
    user = service.verify_otp(data.email, data.code)
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired OTP")
    return envelope("User verified successfully", _token_payload(service, user))

async def get_current_user(token: str = Depends(oauth2_scheme), session: Session = Depends(get_session)) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    user = AuthService(session).get_user_from_token(token)
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is deactivated")
    return user

async def get_current_user_optional(token: str = Depends(oauth2_scheme_optional),
                                    session: Session = Depends(get_session)) -> Optional[User]:
    if not token:
        return None
    user = AuthService(session).get_user_from_token(token)
    if user is None or not user.is_active:
        return None
    return user

async def get_verified_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_verified:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Please verify your account first")
    return current_user

async def get_admin_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user

@router.get("/me")
def read_me(current_user: User = Depends(get_current_user)):
    return envelope("User profile", current_user.as_api())
