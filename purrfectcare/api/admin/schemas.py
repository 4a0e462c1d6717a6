# purrfectcare/api/admin/schemas.py
from marshmallow import Schema, fields, validate, pre_load, EXCLUDE

from purrfectcare.models.provider_application import ServiceType

class ProviderApplySchema(Schema):
    """POST /api/admin/apply 서비스 제공자 신청 스키마."""
    class Meta:
        unknown = EXCLUDE

    organization_name = fields.Str(
        data_key="organizationName",
        required=True,
        validate=validate.Length(min=1, max=100, error="Organization name is required"),
        error_messages={"required": "Organization name is required"}
    )
    service_type = fields.Str(
        data_key="serviceType",
        required=True,
        validate=validate.OneOf([e.value for e in ServiceType], error="{input} is not a valid service type"),
        error_messages={"required": "Service type is required"}
    )
    service_description = fields.Str(
        data_key="serviceDescription",
        required=True,
        validate=validate.Length(min=20, max=2000, error="Description must be at least 20 characters"),
        error_messages={"required": "Service description is required"}
    )
    contact_phone = fields.Str(
        data_key="contactPhone",
        required=True,
        validate=validate.Length(min=1, error="Contact phone is required"),
        error_messages={"required": "Contact phone is required"}
    )
    contact_address = fields.Str(
        data_key="contactAddress",
        required=True,
        validate=validate.Length(min=1, error="Contact address is required"),
        error_messages={"required": "Contact address is required"}
    )

    @pre_load
    def normalize(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        data = {k: v.strip() if isinstance(v, str) else v for k, v in data.items()}
        if isinstance(data.get('serviceType'), str):
            data['serviceType'] = data['serviceType'].lower()
        return data

class ProviderReviewSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    review_notes = fields.Str(data_key="reviewNotes", allow_none=True, load_default=None)
    rejection_reason = fields.Str(data_key="rejectionReason", allow_none=True, load_default=None)

class ProviderApplicationResponseSchema(Schema):
    id = fields.Str(data_key="_id", dump_only=True)
    user_id = fields.Str(data_key="userId")
    organization_name = fields.Str(data_key="organizationName")
    service_type = fields.Str(data_key="serviceType")
    service_description = fields.Str(data_key="serviceDescription")
    contact_phone = fields.Str(data_key="contactPhone")
    contact_address = fields.Str(data_key="contactAddress")
    status = fields.Str()
    reviewed_by = fields.Str(data_key="reviewedBy", allow_none=True)
    reviewed_at = fields.DateTime(data_key="reviewedAt", allow_none=True)
    review_notes = fields.Str(data_key="reviewNotes", allow_none=True)
    rejection_reason = fields.Str(data_key="rejectionReason", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
