# purrfectcare/api/admin/routes.py
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from purrfectcare.core.errors import ServiceError, error_response, validation_error_response
from purrfectcare.core.security import roles_required, verified_required
from purrfectcare.models.user import UserRole
from .schemas import ProviderApplySchema, ProviderReviewSchema, ProviderApplicationResponseSchema

admin_bp = Blueprint('admin_bp', __name__)

@admin_bp.route('/apply', methods=['POST'])
@jwt_required()
@verified_required
def apply_as_provider():
    """서비스 제공자(관리자) 신청. 대기 중이거나 승인된 신청이 있으면 거부됩니다."""
    try:
        data = ProviderApplySchema().load(request.get_json(silent=True) or {})
        application = current_app.services['provider_applications'].apply(get_jwt_identity(), data)
        return jsonify({
            "message": "Service provider application submitted successfully. SUPER_ADMIN will review your application.",
            "application": ProviderApplicationResponseSchema().dump(application)
        }), 201
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)

@admin_bp.route('/', methods=['GET'])
@jwt_required()
def get_my_application():
    try:
        application = current_app.services['provider_applications'].get_my_application(get_jwt_identity())
        return jsonify(ProviderApplicationResponseSchema().dump(application)), 200
    except ServiceError as e:
        return error_response(e)

@admin_bp.route('/applications', methods=['GET'])
@jwt_required()
@roles_required(UserRole.SUPER_ADMIN.value)
def list_applications():
    applications, pagination = current_app.services['provider_applications'].list_applications(request.args)
    return jsonify({"applications": applications, "pagination": pagination}), 200

@admin_bp.route('/applications/<string:application_id>/approve', methods=['POST'])
@jwt_required()
@verified_required
@roles_required(UserRole.SUPER_ADMIN.value)
def approve_application(application_id: str):
    try:
        data = ProviderReviewSchema().load(request.get_json(silent=True) or {})
        application = current_app.services['provider_applications'].approve(
            application_id, get_jwt_identity(), data.get('review_notes')
        )
        return jsonify({
            "message": "Service provider application approved! User role has been updated to ADMIN with their service type.",
            "application": ProviderApplicationResponseSchema().dump(application)
        }), 200
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)

@admin_bp.route('/applications/<string:application_id>/reject', methods=['POST'])
@jwt_required()
@verified_required
@roles_required(UserRole.SUPER_ADMIN.value)
def reject_application(application_id: str):
    try:
        data = ProviderReviewSchema().load(request.get_json(silent=True) or {})
        application = current_app.services['provider_applications'].reject(
            application_id, get_jwt_identity(), data.get('rejection_reason')
        )
        return jsonify({
            "message": "Service provider application rejected.",
            "application": ProviderApplicationResponseSchema().dump(application)
        }), 200
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)
