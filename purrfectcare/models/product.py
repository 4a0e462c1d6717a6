# purrfectcare/models/product.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List

from purrfectcare.models.base import MongoDocument
from purrfectcare.utils.datetime_utils import DateTimeUtils

class ProductCategory(Enum):
    FOOD = "food"
    TREATS = "treats"
    GROOMING = "grooming"
    TOYS = "toys"
    ACCESSORIES = "accessories"
    HYGIENE = "hygiene"
    MEDICINE = "medicine"
    OTHER = "other"

class ProductPetType(Enum):
    DOG = "dog"
    CAT = "cat"
    BIRD = "bird"
    RABBIT = "rabbit"
    ALL = "all"

@dataclass
class Product(MongoDocument):
    """'products' 컬렉션. stock_qty가 None이면 재고를 추적하지 않는 상품입니다."""
    OBJECT_ID_FIELDS = ('created_by',)

    name: str
    price: float
    category: str
    description: Optional[str] = None
    pet_type: str = ProductPetType.ALL.value
    brand: Optional[str] = None
    images: List[str] = field(default_factory=list)
    stock_qty: Optional[int] = None
    is_active: bool = True
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)
    id: Optional[str] = None

    @property
    def primary_image(self) -> Optional[str]:
        return self.images[0] if self.images else None

    def has_stock_for(self, quantity: int) -> bool:
        return self.stock_qty is None or self.stock_qty >= quantity
