# purrfectcare/models/user.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any

from purrfectcare.models.base import MongoDocument
from purrfectcare.utils.datetime_utils import DateTimeUtils

class UserRole(Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"
    PET_OWNER = "PET_OWNER"

class UserIntent(Enum):
    PET_OWNER = "pet_owner"
    LOOKING_TO_ADOPT = "looking_to_adopt"
    EXPLORING = "exploring"

# 관리자 전용 API에 접근 가능한 역할
STAFF_ROLES = (UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value)

@dataclass
class Address:
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: str = "Nepal"

@dataclass
class User(MongoDocument):
    """
    'users' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    password 필드에는 bcrypt 해시만 저장되며 API 응답에는 절대 포함되지 않습니다.
    """
    name: str
    email: str
    password: Optional[str] = None
    roles: str = UserRole.USER.value
    is_verified: bool = False
    has_completed_onboarding: bool = False
    user_intent: Optional[str] = None
    profile_image: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[Address] = None
    service_type: Optional[str] = None
    last_login: Optional[datetime] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)
    id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        user = super().from_dict(data)
        if isinstance(user.address, dict):
            user.address = Address(**{k: v for k, v in user.address.items() if k in Address.__dataclass_fields__})
        return user

    def public_dict(self) -> Dict[str, Any]:
        """회원가입 응답용 최소 정보 {_id, name, email}."""
        return {"_id": self.id, "name": self.name, "email": self.email}
