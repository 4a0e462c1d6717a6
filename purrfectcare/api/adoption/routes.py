# purrfectcare/api/adoption/routes.py
from flask import Blueprint, request, jsonify, current_app, g
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from purrfectcare.core.errors import ServiceError, error_response, validation_error_response
from purrfectcare.core.security import roles_required, verified_required
from purrfectcare.models.user import STAFF_ROLES
from .schemas import (
    ListingCreateSchema,
    ApplicationCreateSchema,
    ReviewSchema,
    AdoptionListingResponseSchema,
    AdoptionApplicationResponseSchema
)

listings_bp = Blueprint('adoption_listings_bp', __name__)
applications_bp = Blueprint('adoption_applications_bp', __name__)

def _request_payload() -> dict:
    """JSON 본문을 우선 사용하고, 없으면 form 필드를 사용합니다."""
    return request.get_json(silent=True) or request.form.to_dict()

# ──────── 입양 공고 ────────

@listings_bp.route('/', methods=['GET'])
def list_listings():
    """[공개] 입양 가능한 공고 목록."""
    listings, pagination = current_app.services['adoption_listings'].list_listings(request.args)
    return jsonify({"listings": listings, "pagination": pagination}), 200

@listings_bp.route('/admin/list', methods=['GET'])
@jwt_required()
@roles_required(*STAFF_ROLES)
def list_my_listings():
    listings, pagination = current_app.services['adoption_listings'].list_my_listings(get_jwt_identity(), request.args)
    return jsonify({
        "listings": AdoptionListingResponseSchema(many=True).dump(listings),
        "pagination": pagination
    }), 200

@listings_bp.route('/<string:listing_id>', methods=['GET'])
def get_listing(listing_id: str):
    try:
        listing = current_app.services['adoption_listings'].get_listing_detail(listing_id)
        return jsonify(listing), 200
    except ServiceError as e:
        return error_response(e)

@listings_bp.route('/admin', methods=['POST'])
@jwt_required()
@verified_required
@roles_required(*STAFF_ROLES)
def create_listing():
    """[관리자] 입양 공고 등록. 사진은 업로드 API로 받은 URL 목록으로 전달합니다."""
    try:
        data = ListingCreateSchema().load(_request_payload())
        listing = current_app.services['adoption_listings'].create_listing(get_jwt_identity(), data)
        return jsonify(AdoptionListingResponseSchema().dump(listing)), 201
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)

@listings_bp.route('/admin/<string:listing_id>', methods=['PUT'])
@jwt_required()
@verified_required
@roles_required(*STAFF_ROLES)
def update_listing(listing_id: str):
    try:
        data = ListingCreateSchema(partial=True).load(_request_payload())
        listing = current_app.services['adoption_listings'].update_listing(listing_id, g.current_user, data)
        return jsonify(AdoptionListingResponseSchema().dump(listing)), 200
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)

@listings_bp.route('/admin/<string:listing_id>', methods=['DELETE'])
@jwt_required()
@verified_required
@roles_required(*STAFF_ROLES)
def delete_listing(listing_id: str):
    try:
        current_app.services['adoption_listings'].delete_listing(listing_id, g.current_user)
        return jsonify({"message": "Listing deleted successfully"}), 200
    except ServiceError as e:
        return error_response(e)

# ──────── 입양 신청 ────────

@applications_bp.route('/admin/all', methods=['GET'])
@jwt_required()
@roles_required(*STAFF_ROLES)
def list_all_applications():
    applications, pagination = current_app.services['adoption_applications'].list_all_applications(
        g.current_user, request.args
    )
    return jsonify({"applications": applications, "pagination": pagination}), 200

@applications_bp.route('/admin/stats', methods=['GET'])
@jwt_required()
@roles_required(*STAFF_ROLES)
def get_adoption_stats():
    stats = current_app.services['adoption_applications'].get_stats(get_jwt_identity())
    return jsonify(stats), 200

@applications_bp.route('/me', methods=['GET'])
@jwt_required()
def list_my_applications():
    applications, pagination = current_app.services['adoption_applications'].list_my_applications(
        get_jwt_identity(), request.args
    )
    return jsonify({"applications": applications, "pagination": pagination}), 200

@applications_bp.route('/<string:application_id>', methods=['GET'])
@jwt_required()
def get_application(application_id: str):
    """신청자 본인 또는 공고 등록자만 조회할 수 있습니다."""
    try:
        application = current_app.services['adoption_applications'].get_application_detail(
            application_id, get_jwt_identity()
        )
        return jsonify(application), 200
    except ServiceError as e:
        return error_response(e)

@applications_bp.route('/listing/<string:listing_id>', methods=['POST'])
@jwt_required()
@verified_required
def create_application(listing_id: str):
    try:
        data = ApplicationCreateSchema().load(request.get_json(silent=True) or {})
        application = current_app.services['adoption_applications'].create_application(
            get_jwt_identity(), listing_id, data
        )
        return jsonify(AdoptionApplicationResponseSchema().dump(application)), 201
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)

@applications_bp.route('/listing/<string:listing_id>', methods=['GET'])
@jwt_required()
@roles_required(*STAFF_ROLES)
def list_listing_applications(listing_id: str):
    try:
        applications, pagination = current_app.services['adoption_applications'].list_listing_applications(
            listing_id, g.current_user, request.args
        )
        return jsonify({"applications": applications, "pagination": pagination}), 200
    except ServiceError as e:
        return error_response(e)

@applications_bp.route('/<string:application_id>/approve', methods=['PATCH'])
@jwt_required()
@verified_required
@roles_required(*STAFF_ROLES)
def approve_application(application_id: str):
    """승인하면 공고는 입양 완료가 되고 입양자의 반려동물 프로필이 생성됩니다."""
    try:
        data = ReviewSchema().load(request.get_json(silent=True) or {})
        application = current_app.services['adoption_applications'].approve_application(
            application_id, g.current_user, data.get('review_notes')
        )
        return jsonify({
            "message": "Application approved successfully. Pet has been marked as adopted.",
            "application": AdoptionApplicationResponseSchema().dump(application)
        }), 200
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)

@applications_bp.route('/<string:application_id>/reject', methods=['PATCH'])
@jwt_required()
@verified_required
@roles_required(*STAFF_ROLES)
def reject_application(application_id: str):
    try:
        data = ReviewSchema().load(request.get_json(silent=True) or {})
        application = current_app.services['adoption_applications'].reject_application(
            application_id, g.current_user, data.get('review_notes')
        )
        return jsonify({
            "message": "Application rejected successfully.",
            "application": AdoptionApplicationResponseSchema().dump(application)
        }), 200
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)
