# purrfectcare/api/orders/schemas.py
from marshmallow import Schema, fields, validate, pre_load, EXCLUDE

from purrfectcare.api.cart.schemas import LineItemSchema
from purrfectcare.models.order import PaymentMethod

class OrderCreateSchema(Schema):
    """POST /api/orders 요청 스키마. 결제 수단을 생략하면 cod(착불)입니다."""
    class Meta:
        unknown = EXCLUDE

    payment_method = fields.Str(
        data_key="paymentMethod",
        load_default=PaymentMethod.COD.value,
        validate=validate.OneOf(
            [e.value for e in PaymentMethod],
            error="Invalid payment method. Must be one of: khalti, cod"
        )
    )
    delivery_address = fields.Str(
        data_key="deliveryAddress",
        required=True,
        validate=validate.Length(min=1, error="Delivery address is required"),
        error_messages={"required": "Delivery address is required", "null": "Delivery address is required"}
    )
    notes = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=500))

    @pre_load
    def strip_strings(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in ('paymentMethod', 'deliveryAddress', 'notes'):
            if isinstance(data.get(key), str):
                data[key] = data[key].strip()
        if isinstance(data.get('paymentMethod'), str):
            data['paymentMethod'] = data['paymentMethod'].lower()
        if data.get('notes') == "":
            data['notes'] = None
        return data

class ConfirmPaymentSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    status = fields.Str(allow_none=True)
    pidx = fields.Str(allow_none=True, load_default=None)

class PaymentSchema(Schema):
    amount = fields.Float()
    method = fields.Str()
    status = fields.Str()
    transaction_id = fields.Str(data_key="transactionId", allow_none=True)
    pidx = fields.Str(allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")

class OrderResponseSchema(Schema):
    id = fields.Str(data_key="_id", dump_only=True)
    user_id = fields.Str(data_key="userId")
    items = fields.List(fields.Nested(LineItemSchema))
    total_amount = fields.Float(data_key="totalAmount")
    status = fields.Str()
    payment_method = fields.Str(data_key="paymentMethod")
    delivery_address = fields.Str(data_key="deliveryAddress", allow_none=True)
    notes = fields.Str(allow_none=True)
    payment = fields.Nested(PaymentSchema, allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
