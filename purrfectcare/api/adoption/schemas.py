# purrfectcare/api/adoption/schemas.py
from marshmallow import Schema, fields, validate, pre_load, EXCLUDE

from purrfectcare.models.adoption import LivingSituation, LISTING_GENDERS
from purrfectcare.models.pet import PetSpecies

MAX_LISTING_PHOTOS = 5

def _strip_and_lower(data, lower_keys=()):
    if not isinstance(data, dict):
        return data
    data = dict(data)
    for key, value in data.items():
        if isinstance(value, str):
            data[key] = value.strip()
    for key in lower_keys:
        if isinstance(data.get(key), str):
            data[key] = data[key].lower()
    return data

class ListingCreateSchema(Schema):
    """
    입양 공고 등록/수정 요청 스키마.
    postedBy, status, adoptedBy 등 서버가 관리하는 필드는 EXCLUDE로 무시됩니다.
    """
    class Meta:
        unknown = EXCLUDE

    name = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=50, error="Pet name is required"),
        error_messages={"required": "Pet name is required"}
    )
    species = fields.Str(
        required=True,
        validate=validate.OneOf([e.value for e in PetSpecies], error="{input} is not a valid species"),
        error_messages={"required": "Species is required"}
    )
    breed = fields.Str(allow_none=True)
    gender = fields.Str(
        required=True,
        validate=validate.OneOf(LISTING_GENDERS, error="{input} is not a valid gender"),
        error_messages={"required": "Gender is required"}
    )
    age = fields.Int(validate=validate.Range(min=0, error="Age cannot be negative"))
    description = fields.Str(
        required=True,
        validate=validate.Length(min=10, max=2000, error="Description must be at least 10 characters"),
        error_messages={"required": "Description is required"}
    )
    health_info = fields.Str(data_key="healthInfo", allow_none=True)
    temperament = fields.Str(allow_none=True)
    special_needs = fields.Str(data_key="specialNeeds", allow_none=True)
    adoption_fee = fields.Float(
        data_key="adoptionFee",
        validate=validate.Range(min=0, error="Adoption fee cannot be negative")
    )
    photos = fields.List(
        fields.Str(validate=validate.Length(min=1)),
        validate=validate.Length(max=MAX_LISTING_PHOTOS, error=f"Maximum {MAX_LISTING_PHOTOS} photos allowed")
    )
    location = fields.Str(allow_none=True)

    @pre_load
    def normalize(self, data, **kwargs):
        return _strip_and_lower(data, lower_keys=('species', 'gender'))

class ApplicationCreateSchema(Schema):
    """POST /api/adoption/applications/listing/<listing_id> 요청 스키마."""
    class Meta:
        unknown = EXCLUDE

    message = fields.Str(
        required=True,
        validate=validate.Length(min=20, max=2000, error="Message must be at least 20 characters"),
        error_messages={"required": "Application message is required"}
    )
    contact_phone = fields.Str(
        data_key="contactPhone",
        required=True,
        validate=validate.Length(min=1, error="Contact phone is required"),
        error_messages={"required": "Contact phone is required"}
    )
    contact_email = fields.Email(
        data_key="contactEmail",
        required=True,
        error_messages={"required": "Contact email is required", "invalid": "Please provide a valid email"}
    )
    living_situation = fields.Str(
        data_key="livingSituation",
        required=True,
        validate=validate.OneOf([e.value for e in LivingSituation], error="{input} is not a valid living situation"),
        error_messages={"required": "Living situation is required"}
    )
    has_other_pets = fields.Bool(data_key="hasOtherPets", load_default=False)
    other_pets_details = fields.Str(data_key="otherPetsDetails", allow_none=True)
    has_children = fields.Bool(data_key="hasChildren", load_default=False)

    @pre_load
    def normalize(self, data, **kwargs):
        return _strip_and_lower(data, lower_keys=('livingSituation', 'contactEmail'))

class ReviewSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    review_notes = fields.Str(data_key="reviewNotes", allow_none=True, load_default=None)

class AdoptionListingResponseSchema(Schema):
    id = fields.Str(data_key="_id", dump_only=True)
    posted_by = fields.Str(data_key="postedBy")
    name = fields.Str()
    species = fields.Str()
    breed = fields.Str(allow_none=True)
    gender = fields.Str()
    age = fields.Int()
    description = fields.Str()
    health_info = fields.Str(data_key="healthInfo", allow_none=True)
    temperament = fields.Str(allow_none=True)
    special_needs = fields.Str(data_key="specialNeeds", allow_none=True)
    adoption_fee = fields.Float(data_key="adoptionFee")
    photos = fields.List(fields.Str())
    location = fields.Str(allow_none=True)
    status = fields.Str()
    adopted_by = fields.Str(data_key="adoptedBy", allow_none=True)
    adopted_at = fields.DateTime(data_key="adoptedAt", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")

class AdoptionApplicationResponseSchema(Schema):
    id = fields.Str(data_key="_id", dump_only=True)
    listing_id = fields.Str(data_key="listingId")
    applicant_id = fields.Str(data_key="applicantId")
    message = fields.Str()
    contact_phone = fields.Str(data_key="contactPhone")
    contact_email = fields.Str(data_key="contactEmail", allow_none=True)
    living_situation = fields.Str(data_key="livingSituation")
    has_other_pets = fields.Bool(data_key="hasOtherPets")
    other_pets_details = fields.Str(data_key="otherPetsDetails", allow_none=True)
    has_children = fields.Bool(data_key="hasChildren")
    status = fields.Str()
    reviewed_at = fields.DateTime(data_key="reviewedAt", allow_none=True)
    review_notes = fields.Str(data_key="reviewNotes", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
