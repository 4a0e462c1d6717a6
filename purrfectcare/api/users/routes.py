# purrfectcare/api/users/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from purrfectcare.core.errors import ServiceError, error_response, validation_error_response
from purrfectcare.core.security import roles_required, load_current_user
from purrfectcare.models.user import UserRole
from .schemas import (
    UserCreateSchema,
    UserUpdateSchema,
    OnboardingSchema,
    UserResponseSchema,
    OnboardingUserSchema
)

users_bp = Blueprint('users_bp', __name__)

def _is_self_or_super_admin(user_id: str) -> bool:
    if get_jwt_identity() == user_id:
        return True
    current_user = load_current_user()
    return bool(current_user) and current_user.get('roles') == UserRole.SUPER_ADMIN.value

def _forbidden():
    return jsonify({"error": "Access denied", "error_code": "FORBIDDEN"}), 403


@users_bp.route('/', methods=['POST'])
@jwt_required()
@roles_required(UserRole.SUPER_ADMIN.value)
def create_user():
    """[SUPER_ADMIN] 사용자 계정을 직접 생성합니다."""
    user_service = current_app.services['users']
    try:
        data = UserCreateSchema().load(request.get_json(silent=True) or {})
        user = user_service.create_user(data)
        return jsonify(UserResponseSchema().dump(user)), 201
    except (ValidationError, ServiceError) as e:
        logging.warning(f"Error creating user: {e}")
        return jsonify({"error": "Failed to create user"}), 400


@users_bp.route('/', methods=['GET'])
@jwt_required()
@roles_required(UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value)
def list_users():
    users = current_app.services['users'].list_users()
    return jsonify(UserResponseSchema(many=True).dump(users)), 200


@users_bp.route('/<string:user_id>', methods=['GET'])
@jwt_required()
def get_user(user_id: str):
    """특정 사용자의 프로필 정보를 조회합니다."""
    try:
        user = current_app.services['users'].get_user(user_id)
        return jsonify(UserResponseSchema().dump(user)), 200
    except ServiceError as e:
        return error_response(e)


@users_bp.route('/<string:user_id>', methods=['PUT'])
@jwt_required()
def update_user(user_id: str):
    """[본인 또는 SUPER_ADMIN] 프로필 부분 수정."""
    if not _is_self_or_super_admin(user_id):
        return _forbidden()
    try:
        data = UserUpdateSchema().load(request.get_json(silent=True) or {})
        user = current_app.services['users'].update_user(user_id, data)
        return jsonify(UserResponseSchema().dump(user)), 200
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)


@users_bp.route('/<string:user_id>', methods=['DELETE'])
@jwt_required()
def delete_user(user_id: str):
    if not _is_self_or_super_admin(user_id):
        return _forbidden()
    try:
        user = current_app.services['users'].delete_user(user_id)
        return jsonify({"message": f"User {user.name} with id: {user.id} deleted successfully"}), 200
    except ServiceError as e:
        return error_response(e)


@users_bp.route('/<string:user_id>/onboarding', methods=['POST'])
@jwt_required()
def complete_onboarding(user_id: str):
    """온보딩 완료 처리. userIntent는 pet_owner, looking_to_adopt, exploring 또는 null."""
    if get_jwt_identity() != user_id:
        return _forbidden()
    try:
        data = OnboardingSchema().load(request.get_json(silent=True) or {})
        user = current_app.services['users'].complete_onboarding(user_id, data.get('user_intent'))
        return jsonify({
            "message": "Onboarding completed successfully",
            "user": OnboardingUserSchema().dump(user)
        }), 200
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)
