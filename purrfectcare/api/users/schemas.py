# purrfectcare/api/users/schemas.py
from marshmallow import Schema, fields, validate, EXCLUDE

from purrfectcare.models.user import UserRole

class AddressSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    street = fields.Str(allow_none=True)
    city = fields.Str(allow_none=True)
    state = fields.Str(allow_none=True)
    country = fields.Str(allow_none=True)

class UserCreateSchema(Schema):
    """POST /api/users 관리자용 사용자 생성 요청 스키마."""
    class Meta:
        unknown = EXCLUDE

    name = fields.Str(required=True, validate=validate.Length(min=1))
    email = fields.Email(required=True)
    password = fields.Str(required=True, load_only=True)
    roles = fields.Str(validate=validate.OneOf([e.value for e in UserRole]))
    is_verified = fields.Bool(data_key="isVerified")
    phone_number = fields.Str(data_key="phoneNumber", allow_none=True)
    profile_image = fields.Str(data_key="profileImage", allow_none=True)
    address = fields.Nested(AddressSchema, allow_none=True)

class UserUpdateSchema(Schema):
    """PUT /api/users/<id> 프로필 부분 수정 스키마. 역할/인증 상태는 여기서 바꿀 수 없습니다."""
    class Meta:
        unknown = EXCLUDE

    name = fields.Str(validate=validate.Length(min=1))
    phone_number = fields.Str(data_key="phoneNumber", allow_none=True)
    profile_image = fields.Str(data_key="profileImage", allow_none=True)
    address = fields.Nested(AddressSchema)

class OnboardingSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    # 값 검증은 서비스에서 "Invalid user intent" 메시지로 처리합니다.
    user_intent = fields.Raw(data_key="userIntent", allow_none=True)

class UserResponseSchema(Schema):
    """사용자 정보 응답 스키마. 비밀번호 해시는 포함하지 않습니다."""
    id = fields.Str(data_key="_id", dump_only=True)
    name = fields.Str()
    email = fields.Str()
    roles = fields.Str()
    is_verified = fields.Bool(data_key="isVerified")
    has_completed_onboarding = fields.Bool(data_key="hasCompletedOnboarding")
    user_intent = fields.Str(data_key="userIntent", allow_none=True)
    profile_image = fields.Str(data_key="profileImage", allow_none=True)
    phone_number = fields.Str(data_key="phoneNumber", allow_none=True)
    address = fields.Nested(AddressSchema, allow_none=True)
    service_type = fields.Str(data_key="serviceType", allow_none=True)
    is_active = fields.Bool(data_key="isActive")
    last_login = fields.DateTime(data_key="lastLogin", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")

class OnboardingUserSchema(Schema):
    id = fields.Str(data_key="_id", dump_only=True)
    name = fields.Str()
    email = fields.Str()
    has_completed_onboarding = fields.Bool(data_key="hasCompletedOnboarding")
    user_intent = fields.Str(data_key="userIntent", allow_none=True)
