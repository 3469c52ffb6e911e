from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import Field
from sqlmodel import Session

from shoppers.core.responses import ApiModel, envelope
from shoppers.db.session import get_session
from shoppers.models.user import User
from shoppers.routers.auth import get_current_user
from shoppers.services.user import UserService

router = APIRouter()

class ProfileUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, pattern=r"^\+?[0-9]{10,13}$")

class AddressIn(ApiModel):
    name: str
    phone: str
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: str
    pincode: str = Field(pattern=r"^[0-9]{6}$")
    landmark: Optional[str] = None
    is_default: bool = False

class AddressUpdate(ApiModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = Field(default=None, pattern=r"^[0-9]{6}$")
    landmark: Optional[str] = None
    is_default: Optional[bool] = None

def get_user_service(session: Session = Depends(get_session)) -> UserService:
    return UserService(session)

@router.get("/me")
def read_user_me(current_user: User = Depends(get_current_user)):
    """
    Get current user.
    """
    return envelope("User profile", current_user.as_api())

@router.put("/me")
def update_user_me(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    user = service.update_profile(current_user, name=data.name, phone=data.phone)
    return envelope("Profile updated successfully", user.as_api())

@router.get("/me/addresses")
def list_addresses(current_user: User = Depends(get_current_user)):
    return envelope("Addresses retrieved successfully", current_user.addresses or [])

@router.post("/me/addresses", status_code=201)
def add_address(
    data: AddressIn,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return envelope("Address added successfully", service.add_address(current_user, data.model_dump()))

@router.put("/me/addresses/{address_id}")
def update_address(
    address_id: str,
    data: AddressUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    addresses = service.update_address(current_user, address_id, data.model_dump(exclude_unset=True))
    return envelope("Address updated successfully", addresses)

@router.delete("/me/addresses/{address_id}")
def delete_address(
    address_id: str,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return envelope("Address deleted successfully", service.delete_address(current_user, address_id))
