# purrfectcare/api/products/schemas.py
from marshmallow import Schema, fields, validate, pre_load, EXCLUDE

from purrfectcare.models.product import ProductCategory, ProductPetType

def _lowercase_enums(data):
    if isinstance(data, dict):
        data = dict(data)
        for key in ('category', 'petType'):
            if isinstance(data.get(key), str):
                data[key] = data[key].strip().lower()
    return data

class ProductCreateSchema(Schema):
    """POST /api/products/admin 상품 등록 요청 스키마."""
    class Meta:
        unknown = EXCLUDE

    name = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=200),
        error_messages={"required": "Product name is required"}
    )
    description = fields.Str(allow_none=True, validate=validate.Length(max=2000))
    price = fields.Float(
        required=True,
        validate=validate.Range(min=0, error="Price cannot be negative"),
        error_messages={"required": "Price is required"}
    )
    category = fields.Str(
        required=True,
        validate=validate.OneOf([e.value for e in ProductCategory]),
        error_messages={"required": "Category is required"}
    )
    pet_type = fields.Str(data_key="petType", validate=validate.OneOf([e.value for e in ProductPetType]))
    brand = fields.Str(allow_none=True)
    images = fields.List(fields.Str(validate=validate.Length(min=1)))
    stock_qty = fields.Int(
        data_key="stockQty",
        allow_none=True,
        validate=validate.Range(min=0, error="Stock quantity cannot be negative")
    )
    is_active = fields.Bool(data_key="isActive")

    @pre_load
    def normalize(self, data, **kwargs):
        return _lowercase_enums(data)

class ProductUpdateSchema(ProductCreateSchema):
    """PUT /api/products/admin/<id> 부분 수정 스키마. createdBy, _id는 받지 않습니다."""

class ProductResponseSchema(Schema):
    id = fields.Str(data_key="_id", dump_only=True)
    name = fields.Str()
    description = fields.Str(allow_none=True)
    price = fields.Float()
    category = fields.Str()
    pet_type = fields.Str(data_key="petType")
    brand = fields.Str(allow_none=True)
    images = fields.List(fields.Str())
    stock_qty = fields.Int(data_key="stockQty", allow_none=True)
    is_active = fields.Bool(data_key="isActive")
    created_by = fields.Str(data_key="createdBy", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
