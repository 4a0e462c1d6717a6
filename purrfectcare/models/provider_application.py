# purrfectcare/models/provider_application.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from purrfectcare.models.base import MongoDocument
from purrfectcare.utils.datetime_utils import DateTimeUtils

class ServiceType(Enum):
    PET_ADOPTION = "pet_adoption"
    VETERINARY = "veterinary"
    GROOMING = "grooming"
    TRAINING = "training"
    PET_SITTING = "pet_sitting"
    MARKETPLACE = "marketplace"
    OTHER = "other"

class ProviderApplicationStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

@dataclass
class ProviderApplication(MongoDocument):
    """
    서비스 제공자(관리자) 신청서. 'provider_applications' 컬렉션.
    승인되면 신청자의 역할이 ADMIN으로 바뀌고 service_type이 사용자에게 복사됩니다.
    """
    OBJECT_ID_FIELDS = ('user_id', 'reviewed_by')

    user_id: str
    organization_name: str
    service_type: str
    service_description: str
    contact_phone: str
    contact_address: str
    status: str = ProviderApplicationStatus.PENDING.value
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)
    id: Optional[str] = None
