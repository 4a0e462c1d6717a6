# purrfectcare/models/adoption.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List

from purrfectcare.models.base import MongoDocument
from purrfectcare.utils.datetime_utils import DateTimeUtils

class ListingStatus(Enum):
    AVAILABLE = "available"
    ADOPTED = "adopted"

class ApplicationStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class LivingSituation(Enum):
    HOUSE_WITH_YARD = "house_with_yard"
    HOUSE_WITHOUT_YARD = "house_without_yard"
    APARTMENT = "apartment"
    FARM = "farm"
    OTHER = "other"

# 입양 공고의 성별은 반려동물 프로필과 같은 값 집합을 사용합니다.
LISTING_GENDERS = ("male", "female", "unknown")

@dataclass
class AdoptionListing(MongoDocument):
    """'adoption_listings' 컬렉션. age는 개월 수입니다."""
    OBJECT_ID_FIELDS = ('posted_by', 'adopted_by')

    posted_by: str
    name: str
    species: str
    gender: str
    age: int
    description: str
    breed: Optional[str] = None
    health_info: Optional[str] = None
    temperament: Optional[str] = None
    special_needs: Optional[str] = None
    adoption_fee: float = 0
    photos: List[str] = field(default_factory=list)
    location: Optional[str] = None
    status: str = ListingStatus.AVAILABLE.value
    adopted_by: Optional[str] = None
    adopted_at: Optional[datetime] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)
    id: Optional[str] = None

@dataclass
class AdoptionApplication(MongoDocument):
    """'adoption_applications' 컬렉션. (listing_id, applicant_id)는 고유합니다."""
    OBJECT_ID_FIELDS = ('listing_id', 'applicant_id')

    listing_id: str
    applicant_id: str
    message: str
    contact_phone: str
    living_situation: str
    contact_email: Optional[str] = None
    has_other_pets: bool = False
    other_pets_details: Optional[str] = None
    has_children: bool = False
    status: str = ApplicationStatus.PENDING.value
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)
    id: Optional[str] = None
