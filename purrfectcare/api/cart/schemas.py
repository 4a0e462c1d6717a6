# purrfectcare/api/cart/schemas.py
from marshmallow import Schema, fields, EXCLUDE

class AddCartItemSchema(Schema):
    """POST /api/cart/items 요청 스키마. 수량 검증은 서비스에서 합니다."""
    class Meta:
        unknown = EXCLUDE

    product_id = fields.Str(
        data_key="productId",
        required=True,
        error_messages={"required": "Product ID is required", "null": "Product ID is required"}
    )
    quantity = fields.Raw(allow_none=True, load_default=1)

class UpdateCartItemSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    quantity = fields.Raw(
        required=True,
        error_messages={"required": "Quantity is required", "null": "Quantity is required"}
    )

class LineItemSchema(Schema):
    """장바구니/주문 공용 라인 아이템 응답 스키마."""
    product_id = fields.Str(data_key="productId")
    quantity = fields.Int()
    price_snapshot = fields.Float(data_key="priceSnapshot")
    name_snapshot = fields.Str(data_key="nameSnapshot")
    image_snapshot = fields.Str(data_key="imageSnapshot", allow_none=True)
    subtotal = fields.Float(dump_only=True)

class CartResponseSchema(Schema):
    id = fields.Str(data_key="_id", dump_only=True)
    user_id = fields.Str(data_key="userId")
    items = fields.List(fields.Nested(LineItemSchema))
    total_items = fields.Int(data_key="totalItems", dump_only=True)
    total_amount = fields.Float(data_key="totalAmount", dump_only=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
