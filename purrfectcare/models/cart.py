# purrfectcare/models/cart.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any

from purrfectcare.models.base import MongoDocument
from purrfectcare.models.product import Product
from purrfectcare.utils.datetime_utils import DateTimeUtils

@dataclass
class LineItem(MongoDocument):
    """
    장바구니/주문의 한 줄.
    *_snapshot 필드는 담는 시점의 상품 정보를 복사해 두어, 이후 상품이 수정되어도 기록이 바뀌지 않습니다.
    """
    OBJECT_ID_FIELDS = ('product_id',)

    product_id: str
    quantity: int
    price_snapshot: float
    name_snapshot: str
    image_snapshot: Optional[str] = None

    @classmethod
    def from_product(cls, product: Product, quantity: int) -> "LineItem":
        return cls(
            product_id=product.id,
            quantity=quantity,
            price_snapshot=product.price,
            name_snapshot=product.name,
            image_snapshot=product.primary_image
        )

    def refresh_snapshot(self, product: Product):
        self.price_snapshot = product.price
        self.name_snapshot = product.name
        self.image_snapshot = product.primary_image

    @property
    def subtotal(self) -> float:
        return self.price_snapshot * self.quantity

@dataclass
class Cart(MongoDocument):
    """'carts' 컬렉션. 사용자당 하나."""
    OBJECT_ID_FIELDS = ('user_id',)

    user_id: str
    items: List[LineItem] = field(default_factory=list)
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)
    id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Cart":
        cart = super().from_dict(data)
        cart.items = [LineItem.from_dict(item) for item in cart.items or []]
        return cart

    def to_document(self) -> Dict[str, Any]:
        doc = super().to_document()
        doc['items'] = [item.to_document() for item in self.items]
        return doc

    def find_item(self, product_id: str) -> Optional[LineItem]:
        return next((item for item in self.items if item.product_id == product_id), None)

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_amount(self) -> float:
        return round(sum(item.subtotal for item in self.items), 2)
