# purrfectcare/api/orders/routes.py
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from purrfectcare.core.errors import ServiceError, error_response, validation_error_response
from purrfectcare.core.security import verified_required, load_current_user
from .schemas import OrderCreateSchema, ConfirmPaymentSchema, OrderResponseSchema

orders_bp = Blueprint('orders_bp', __name__)

@orders_bp.route('/', methods=['POST'])
@jwt_required()
@verified_required
def create_order():
    """장바구니 전체를 주문으로 전환합니다. 성공하면 장바구니는 비워집니다."""
    try:
        data = OrderCreateSchema().load(request.get_json(silent=True) or {})
        order = current_app.services['orders'].create_order(
            get_jwt_identity(),
            data['payment_method'],
            data['delivery_address'],
            data.get('notes')
        )
        return jsonify(OrderResponseSchema().dump(order)), 201
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)

@orders_bp.route('/', methods=['GET'])
@jwt_required()
def list_orders():
    orders, pagination = current_app.services['orders'].list_orders(get_jwt_identity(), request.args)
    return jsonify({
        "orders": OrderResponseSchema(many=True).dump(orders),
        "pagination": pagination
    }), 200

@orders_bp.route('/<string:order_id>', methods=['GET'])
@jwt_required()
def get_order(order_id: str):
    try:
        order = current_app.services['orders'].get_order(order_id, get_jwt_identity())
        return jsonify(OrderResponseSchema().dump(order)), 200
    except ServiceError as e:
        return error_response(e)

@orders_bp.route('/<string:order_id>/cancel', methods=['PUT'])
@jwt_required()
@verified_required
def cancel_order(order_id: str):
    try:
        order = current_app.services['orders'].cancel_order(order_id, get_jwt_identity())
        return jsonify({"message": "Order cancelled successfully", "order": OrderResponseSchema().dump(order)}), 200
    except ServiceError as e:
        return error_response(e)

@orders_bp.route('/<string:order_id>/payment/khalti', methods=['POST'])
@jwt_required()
def initiate_khalti_payment(order_id: str):
    """Khalti 결제 세션을 만들고 {pidx, payment_url, expires_at}을 반환합니다."""
    try:
        user = load_current_user()
        if not user:
            return jsonify({"error": "User not authenticated. Please login first."}), 401
        session = current_app.services['orders'].initiate_khalti_payment(order_id, user)
        return jsonify(session), 200
    except ServiceError as e:
        return error_response(e)

@orders_bp.route('/<string:order_id>/confirm-payment', methods=['POST', 'PUT'])
@jwt_required()
def confirm_payment(order_id: str):
    """
    Khalti 콜백 후 결제 확정. 본문의 status는 참고용이며,
    실제 결과는 서버가 pidx로 Khalti에 조회해 결정합니다.
    """
    try:
        data = ConfirmPaymentSchema().load(request.get_json(silent=True) or {})
        order = current_app.services['orders'].confirm_payment(order_id, get_jwt_identity(), data.get('pidx'))
        return jsonify(OrderResponseSchema().dump(order)), 200
    except ValidationError as err:
        return validation_error_response(err)
    except ServiceError as e:
        return error_response(e)
