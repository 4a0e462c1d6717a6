# purrfectcare/api/cart/routes.py
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from purrfectcare.core.errors import ServiceError, error_response, validation_error_response
from purrfectcare.core.security import verified_required
from .schemas import AddCartItemSchema, UpdateCartItemSchema, CartResponseSchema

cart_bp = Blueprint('cart_bp', __name__)

def _cart_response(message: str, cart):
    return jsonify({"message": message, "cart": CartResponseSchema().dump(cart)}), 200

@cart_bp.route('/', methods=['GET'])
@jwt_required()
def get_cart():
    """내 장바구니 조회. 없으면 빈 장바구니를 만들어 반환합니다."""
    cart = current_app.services['cart'].get_or_create_cart(get_jwt_identity())
    return jsonify(CartResponseSchema().dump(cart)), 200

@cart_bp.route('/items', methods=['POST'])
@jwt_required()
@verified_required
def add_item():
    try:
        data = AddCartItemSchema().load(request.get_json(silent=True) or {})
        cart = current_app.services['cart'].add_item(get_jwt_identity(), data['product_id'], data['quantity'])
        return _cart_response("Item added to cart", cart)
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)

@cart_bp.route('/items/<string:product_id>', methods=['PUT'])
@jwt_required()
@verified_required
def update_item_quantity(product_id: str):
    try:
        data = UpdateCartItemSchema().load(request.get_json(silent=True) or {})
        cart = current_app.services['cart'].update_item_quantity(get_jwt_identity(), product_id, data['quantity'])
        return _cart_response("Cart updated", cart)
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)

@cart_bp.route('/items/<string:product_id>', methods=['DELETE'])
@jwt_required()
@verified_required
def remove_item(product_id: str):
    try:
        cart = current_app.services['cart'].remove_item(get_jwt_identity(), product_id)
        return _cart_response("Item removed from cart", cart)
    except ServiceError as e:
        return error_response(e)

@cart_bp.route('/clear', methods=['DELETE'])
@jwt_required()
@verified_required
def clear_cart():
    try:
        cart = current_app.services['cart'].clear_cart(get_jwt_identity())
        return _cart_response("Cart cleared", cart)
    except ServiceError as e:
        return error_response(e)
