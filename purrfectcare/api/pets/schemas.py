# purrfectcare/api/pets/schemas.py
import math
from typing import Any, Dict, List

from marshmallow import Schema, fields, pre_load, post_load, validates_schema, ValidationError, EXCLUDE

from purrfectcare.models.pet import PetSpecies, PetGender, MAX_PHOTOS_PER_PET, MIN_PET_AGE, MAX_PET_AGE
from purrfectcare.utils.datetime_utils import DateTimeUtils

VALID_SPECIES = [e.value for e in PetSpecies]
VALID_GENDERS = [e.value for e in PetGender]

def sanitize_pet_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    저장 전 정규화.
    - name, breed, medicalNotes 앞뒤 공백 제거
    - species, gender 소문자 변환
    - 빈 문자열은 None으로 변환
    """
    sanitized = dict(data)
    for key in ('name', 'breed', 'medicalNotes'):
        if isinstance(sanitized.get(key), str):
            sanitized[key] = sanitized[key].strip()
    for key in ('species', 'gender'):
        if isinstance(sanitized.get(key), str):
            sanitized[key] = sanitized[key].strip().lower()
    for key, value in sanitized.items():
        if value == "":
            sanitized[key] = None
    return sanitized

def collect_pet_errors(data: Dict[str, Any], partial: bool = False) -> List[str]:
    """
    모든 검증 오류를 한 번에 모아 반환합니다. partial=True(수정)이면 전달된 필드만 검사합니다.
    """
    errors = []

    if not partial or 'name' in data:
        if not data.get('name'):
            errors.append("Pet name is required")
    if not partial or 'species' in data:
        if not data.get('species'):
            errors.append("Species is required")
    if not partial or 'gender' in data:
        if not data.get('gender'):
            errors.append("Gender is required")

    species = data.get('species')
    if species and species not in VALID_SPECIES:
        errors.append(f"Invalid species. Must be one of: {', '.join(VALID_SPECIES)}")

    gender = data.get('gender')
    if gender and gender not in VALID_GENDERS:
        errors.append(f"Invalid gender. Must be one of: {', '.join(VALID_GENDERS)}")

    age = data.get('age')
    if age is not None:
        try:
            if isinstance(age, bool):
                raise ValueError
            age_value = float(age)
            if math.isnan(age_value) or age_value < MIN_PET_AGE or age_value > MAX_PET_AGE:
                raise ValueError
        except (TypeError, ValueError):
            errors.append("Age must be a number between 0 and 100")

    dob = data.get('date_of_birth')
    if dob:
        try:
            dob_date = DateTimeUtils.validate_date_field(dob, "dateOfBirth")
            if dob_date > DateTimeUtils.today():
                errors.append("Date of birth cannot be in the future")
        except ValueError:
            errors.append("Invalid date of birth format")

    photos = data.get('photos')
    if photos is not None:
        if not isinstance(photos, list):
            errors.append("Photos must be an array of URLs")
        else:
            if len(photos) > MAX_PHOTOS_PER_PET:
                errors.append(f"Maximum {MAX_PHOTOS_PER_PET} photos allowed per pet")
            for index, photo in enumerate(photos):
                if not isinstance(photo, str) or not photo.strip():
                    errors.append(f"Invalid photo URL at index {index}")

    return errors


class PetPayloadSchema(Schema):
    """
    POST /api/pets, PUT /api/pets/<pet_id> 요청 스키마.
    필드 단위 타입 검사 대신 collect_pet_errors로 오류 메시지를 한 줄로 모읍니다.
    """
    class Meta:
        unknown = EXCLUDE

    name = fields.Raw(allow_none=True)
    species = fields.Raw(allow_none=True)
    gender = fields.Raw(allow_none=True)
    breed = fields.Raw(allow_none=True)
    age = fields.Raw(allow_none=True)
    date_of_birth = fields.Raw(data_key="dateOfBirth", allow_none=True)
    photos = fields.Raw(allow_none=True)
    medical_notes = fields.Raw(data_key="medicalNotes", allow_none=True)

    @pre_load
    def sanitize(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        return sanitize_pet_data(data)

    @validates_schema
    def validate_pet(self, data, partial=None, **kwargs):
        errors = collect_pet_errors(data, partial=bool(partial))
        if errors:
            raise ValidationError(errors)

    @post_load
    def coerce(self, data, **kwargs):
        if data.get('age') is not None:
            data['age'] = float(data['age'])
        if data.get('date_of_birth'):
            data['date_of_birth'] = DateTimeUtils.for_mongo(
                DateTimeUtils.validate_date_field(data['date_of_birth'], "dateOfBirth")
            )
        if data.get('photos') is not None:
            data['photos'] = [photo.strip() for photo in data['photos']]
        return data

class PetPhotosSchema(Schema):
    """POST /api/pets/<pet_id>/photos 요청 스키마."""
    photos = fields.List(
        fields.Str(),
        required=True,
        error_messages={"required": "No photos provided"}
    )

class PetPhotoDeleteSchema(Schema):
    photo_url = fields.Str(
        data_key="photoUrl",
        required=True,
        error_messages={"required": "Photo URL is required"}
    )

class PetResponseSchema(Schema):
    """반려동물 프로필 응답 스키마. calculatedAge는 생년월일에서 계산됩니다."""
    id = fields.Str(data_key="_id", dump_only=True)
    user_id = fields.Str(data_key="userId", dump_only=True)
    name = fields.Str()
    species = fields.Str()
    gender = fields.Str()
    breed = fields.Str(allow_none=True)
    age = fields.Raw(allow_none=True)
    calculated_age = fields.Raw(data_key="calculatedAge", dump_only=True)
    date_of_birth = fields.DateTime(data_key="dateOfBirth", allow_none=True)
    photos = fields.List(fields.Str())
    medical_notes = fields.Str(data_key="medicalNotes", allow_none=True)
    is_deleted = fields.Bool(data_key="isDeleted")
    deleted_at = fields.DateTime(data_key="deletedAt", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
