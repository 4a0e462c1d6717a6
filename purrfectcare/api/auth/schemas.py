# purrfectcare/api/auth/schemas.py
from marshmallow import Schema, fields, validate, EXCLUDE

class RegisterSchema(Schema):
    """회원가입 요청의 형식 검사 스키마. 비밀번호 관련 필수/일치 검사는 라우트에서 먼저 수행합니다."""
    class Meta:
        unknown = EXCLUDE

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, max=100, error="Username is required"),
            validate.Regexp(r"\s*\S", error="Username is required")
        ],
        error_messages={"required": "Username is required"}
    )
    email = fields.Email(
        required=True,
        error_messages={"required": "Email is required", "invalid": "{input} is not a valid email address!"}
    )
    password = fields.Str(required=True, load_only=True)
    confirm_password = fields.Str(data_key="confirmPassword", load_only=True)

class EmailRequestSchema(Schema):
    """forgot-password, resend-verification 요청 스키마."""
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(
        required=True,
        error_messages={"required": "Email address is required.", "invalid": "Not a valid email address."}
    )

class AuthUserResponseSchema(Schema):
    """로그인 응답에 포함되는 사용자 정보. 비밀번호 해시는 포함하지 않습니다."""
    id = fields.Str(data_key="_id", dump_only=True)
    name = fields.Str()
    email = fields.Str()
    roles = fields.Str()
    is_verified = fields.Bool(data_key="isVerified")
    has_completed_onboarding = fields.Bool(data_key="hasCompletedOnboarding")
    user_intent = fields.Str(data_key="userIntent", allow_none=True)
    profile_image = fields.Str(data_key="profileImage", allow_none=True)
