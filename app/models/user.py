from enum import Enum
from typing import Optional

from pydantic import BaseModel


class UserRole(str, Enum):
    admin = "admin"
    seller = "seller"
    buyer = "buyer"


class UserLocation(BaseModel):
    city: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


class User(BaseModel):
    """User profile record, stored under ``user:{id}``.

    Authentication lives with the identity provider; this record only
    carries what authorization and display need.
    """

    id: str
    name: str
    email: str
    phone: Optional[str] = None
    role: UserRole = UserRole.buyer
    can_login: bool = True
    location: Optional[UserLocation] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin
