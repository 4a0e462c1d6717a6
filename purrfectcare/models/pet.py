# purrfectcare/models/pet.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List
from enum import Enum

from purrfectcare.models.base import MongoDocument
from purrfectcare.utils.datetime_utils import DateTimeUtils

class PetSpecies(Enum):
    DOG = "dog"
    CAT = "cat"
    BIRD = "bird"
    RABBIT = "rabbit"
    HAMSTER = "hamster"
    FISH = "fish"
    OTHER = "other"

class PetGender(Enum):
    MALE = "male"
    FEMALE = "female"
    UNKNOWN = "unknown"

MAX_PHOTOS_PER_PET = 10
MIN_PET_AGE = 0
MAX_PET_AGE = 100

@dataclass
class Pet(MongoDocument):
    """
    'pets' 컬렉션 문서 구조.
    반려동물은 정확히 한 명의 사용자(user_id)에게 속하며, 삭제는 기본적으로 소프트 삭제입니다.
    """
    OBJECT_ID_FIELDS = ('user_id',)

    user_id: str
    name: str
    species: str
    gender: str
    breed: Optional[str] = None
    age: Optional[float] = None
    date_of_birth: Optional[datetime] = None
    photos: List[str] = field(default_factory=list)
    medical_notes: Optional[str] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)
    id: Optional[str] = None

    @property
    def calculated_age(self) -> Optional[float]:
        """생년월일이 있으면 만 나이(년), 없으면 저장된 age를 그대로 반환합니다."""
        if self.date_of_birth:
            return DateTimeUtils.calculate_age_years(self.date_of_birth)
        return self.age
