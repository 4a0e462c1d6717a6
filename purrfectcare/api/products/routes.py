# purrfectcare/api/products/routes.py
from flask import Blueprint, request, jsonify, current_app, g
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from purrfectcare.core.errors import ServiceError, error_response, validation_error_response
from purrfectcare.core.security import roles_required, verified_required
from purrfectcare.models.user import STAFF_ROLES
from .schemas import ProductCreateSchema, ProductUpdateSchema, ProductResponseSchema

products_bp = Blueprint('products_bp', __name__)

@products_bp.route('/', methods=['GET'])
def list_products():
    """[공개] 판매 중인 상품 목록. 검색, 카테고리, 가격 범위 필터를 지원합니다."""
    products, pagination = current_app.services['products'].list_products(request.args)
    return jsonify({
        "products": ProductResponseSchema(many=True).dump(products),
        "pagination": pagination
    }), 200

@products_bp.route('/admin/list', methods=['GET'])
@jwt_required()
@roles_required(*STAFF_ROLES)
def list_admin_products():
    products, pagination = current_app.services['products'].list_admin_products(request.args)
    return jsonify({
        "products": ProductResponseSchema(many=True).dump(products),
        "pagination": pagination
    }), 200

@products_bp.route('/admin', methods=['POST'])
@jwt_required()
@roles_required(*STAFF_ROLES)
@verified_required
def create_product():
    """[관리자] 상품 등록."""
    try:
        data = ProductCreateSchema().load(request.get_json(silent=True) or {})
        product = current_app.services['products'].create_product(get_jwt_identity(), data)
        return jsonify({
            "message": "Product created successfully",
            "product": ProductResponseSchema().dump(product)
        }), 201
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)

@products_bp.route('/admin/<string:product_id>', methods=['PUT'])
@jwt_required()
@roles_required(*STAFF_ROLES)
def update_product(product_id: str):
    """[관리자] 상품 부분 수정. 등록자 본인 또는 SUPER_ADMIN만 가능합니다."""
    try:
        data = ProductUpdateSchema(partial=True).load(request.get_json(silent=True) or {})
        product = current_app.services['products'].update_product(product_id, g.current_user, data)
        return jsonify({
            "message": "Product updated successfully",
            "product": ProductResponseSchema().dump(product)
        }), 200
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)

@products_bp.route('/admin/<string:product_id>', methods=['DELETE'])
@jwt_required()
@roles_required(*STAFF_ROLES)
def delete_product(product_id: str):
    try:
        current_app.services['products'].delete_product(product_id, g.current_user)
        return jsonify({"message": "Product deleted successfully"}), 200
    except ServiceError as e:
        return error_response(e)

@products_bp.route('/<string:product_id>', methods=['GET'])
def get_product(product_id: str):
    try:
        product = current_app.services['products'].get_product(product_id)
        return jsonify(ProductResponseSchema().dump(product)), 200
    except ServiceError as e:
        return error_response(e)
