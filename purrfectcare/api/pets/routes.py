# purrfectcare/api/pets/routes.py
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from purrfectcare.core.errors import ServiceError, error_response, validation_error_response
from .schemas import (
    PetPayloadSchema,
    PetPhotosSchema,
    PetPhotoDeleteSchema,
    PetResponseSchema
)

pets_bp = Blueprint('pets_bp', __name__)

@pets_bp.route('/stats', methods=['GET'])
@jwt_required()
def get_pet_statistics():
    """내 반려동물 통계 (총 마릿수, 평균 나이, 종/성별 분포)."""
    user_id = get_jwt_identity()
    stats = current_app.services['pets'].get_statistics(user_id)
    return jsonify(stats), 200

@pets_bp.route('/', methods=['POST'])
@jwt_required()
def create_pet():
    """반려동물 등록 API."""
    user_id = get_jwt_identity()
    pet_service = current_app.services['pets']
    try:
        validated_data = PetPayloadSchema().load(request.get_json(silent=True) or {})
        new_pet = pet_service.create_pet(user_id, validated_data)
        return jsonify(PetResponseSchema().dump(new_pet)), 201
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)

@pets_bp.route('/', methods=['GET'])
@jwt_required()
def list_pets():
    user_id = get_jwt_identity()
    pets, pagination = current_app.services['pets'].list_pets(user_id, request.args)
    return jsonify({
        "pets": PetResponseSchema(many=True).dump(pets),
        "pagination": pagination
    }), 200

@pets_bp.route('/<string:pet_id>', methods=['GET'])
@jwt_required()
def get_pet(pet_id: str):
    """[소유자 전용] 특정 반려동물의 프로필을 조회합니다."""
    user_id = get_jwt_identity()
    try:
        pet = current_app.services['pets'].get_pet(pet_id, user_id)
        return jsonify(PetResponseSchema().dump(pet)), 200
    except ServiceError as e:
        return error_response(e)

@pets_bp.route('/<string:pet_id>', methods=['PUT'])
@jwt_required()
def update_pet(pet_id: str):
    """[소유자 전용] 프로필 부분 수정. 전달된 필드만 검증합니다."""
    user_id = get_jwt_identity()
    try:
        update_data = PetPayloadSchema(partial=True).load(request.get_json(silent=True) or {})
        updated_pet = current_app.services['pets'].update_pet(pet_id, user_id, update_data)
        return jsonify(PetResponseSchema().dump(updated_pet)), 200
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)

@pets_bp.route('/<string:pet_id>/photos', methods=['POST'])
@jwt_required()
def add_pet_photos(pet_id: str):
    """업로드가 끝난 사진 URL을 반려동물 프로필에 추가합니다."""
    user_id = get_jwt_identity()
    try:
        data = PetPhotosSchema().load(request.get_json(silent=True) or {})
        pet = current_app.services['pets'].add_photos(pet_id, user_id, data['photos'])
        return jsonify({"message": "Photos added successfully", "pet": PetResponseSchema().dump(pet)}), 200
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)

@pets_bp.route('/<string:pet_id>/photos', methods=['DELETE'])
@jwt_required()
def delete_pet_photo(pet_id: str):
    user_id = get_jwt_identity()
    try:
        data = PetPhotoDeleteSchema().load(request.get_json(silent=True) or {})
        pet = current_app.services['pets'].delete_photo(pet_id, user_id, data['photo_url'])
        return jsonify({"message": "Photo deleted successfully", "pet": PetResponseSchema().dump(pet)}), 200
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)

@pets_bp.route('/<string:pet_id>', methods=['DELETE'])
@jwt_required()
def delete_pet(pet_id: str):
    """소프트 삭제. restore로 되돌릴 수 있습니다."""
    user_id = get_jwt_identity()
    try:
        pet = current_app.services['pets'].soft_delete_pet(pet_id, user_id)
        return jsonify({"message": f"Pet {pet.name} with id: {pet.id} soft deleted successfully"}), 200
    except ServiceError as e:
        return error_response(e)

@pets_bp.route('/<string:pet_id>/permanent', methods=['DELETE'])
@jwt_required()
def permanently_delete_pet(pet_id: str):
    user_id = get_jwt_identity()
    try:
        pet = current_app.services['pets'].permanently_delete_pet(pet_id, user_id)
        return jsonify({"message": f"Pet {pet.name} permanently deleted"}), 200
    except ServiceError as e:
        return error_response(e)

@pets_bp.route('/<string:pet_id>/restore', methods=['PATCH'])
@jwt_required()
def restore_pet(pet_id: str):
    user_id = get_jwt_identity()
    try:
        pet = current_app.services['pets'].restore_pet(pet_id, user_id)
        return jsonify({"message": f"Pet {pet.name} restored successfully", "pet": PetResponseSchema().dump(pet)}), 200
    except ServiceError as e:
        return error_response(e)
