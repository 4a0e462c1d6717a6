# purrfectcare/models/order.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any

from purrfectcare.models.base import MongoDocument
from purrfectcare.models.cart import LineItem
from purrfectcare.utils.datetime_utils import DateTimeUtils

class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

class PaymentMethod(Enum):
    KHALTI = "khalti"
    COD = "cod"

class PaymentStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

@dataclass
class Payment:
    """주문에 내장되는 결제 정보. pidx는 Khalti 결제 세션 식별자입니다."""
    amount: float
    method: str
    status: str = PaymentStatus.PENDING.value
    transaction_id: Optional[str] = None
    pidx: Optional[str] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)

@dataclass
class Order(MongoDocument):
    OBJECT_ID_FIELDS = ('user_id',)

    user_id: str
    items: List[LineItem]
    total_amount: float
    payment_method: str
    delivery_address: str
    status: str = OrderStatus.PENDING.value
    notes: Optional[str] = None
    payment: Optional[Payment] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)
    id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        order = super().from_dict(data)
        order.items = [LineItem.from_dict(item) for item in order.items or []]
        if isinstance(order.payment, dict):
            order.payment = Payment(**{k: v for k, v in order.payment.items() if k in Payment.__dataclass_fields__})
        return order

    def to_document(self) -> Dict[str, Any]:
        doc = super().to_document()
        doc['items'] = [item.to_document() for item in self.items]
        return doc

    @property
    def is_paid(self) -> bool:
        return self.payment is not None and self.payment.status == PaymentStatus.COMPLETED.value
