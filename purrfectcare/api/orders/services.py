# purrfectcare/api/orders/services.py
import logging
from dataclasses import asdict
from typing import Dict, Any, List, Tuple, Optional

from pymongo import ReturnDocument, DESCENDING

from purrfectcare.core.errors import BadRequestError, ForbiddenError, NotFoundError
from purrfectcare.models.cart import Cart, LineItem
from purrfectcare.models.order import Order, Payment, OrderStatus, PaymentMethod, PaymentStatus
from purrfectcare.models.product import Product
from purrfectcare.services.khalti_service import KhaltiService
from purrfectcare.services.mongo_service import MongoService
from purrfectcare.utils.datetime_utils import DateTimeUtils
from purrfectcare.utils.query_utils import to_object_id, get_pagination, pagination_meta

# Khalti lookup 응답에서 결제 완료를 뜻하는 상태 값
KHALTI_COMPLETED = "Completed"

class OrderService:
    """
    장바구니 기반 주문 서비스.
    주문 시점에 상품을 다시 검증하고 재고를 조건부 원자 연산으로 차감합니다.
    """
    def __init__(self, mongo: MongoService, khalti: KhaltiService):
        self.mongo = mongo
        self.khalti = khalti

    def _get_owned_order(self, order_id: str, user_id: str) -> Order:
        oid = to_object_id(order_id)
        if not oid:
            raise BadRequestError("Invalid order ID")
        doc = self.mongo.orders.find_one({'_id': oid})
        if not doc:
            raise NotFoundError("Order not found")
        order = Order.from_dict(doc)
        if order.user_id != user_id:
            raise ForbiddenError("Access denied")
        return order

    def _update(self, order_id: str, updates: Dict[str, Any]) -> Order:
        updates['updated_at'] = DateTimeUtils.now()
        doc = self.mongo.orders.find_one_and_update(
            {'_id': to_object_id(order_id)},
            {'$set': DateTimeUtils.for_mongo(updates)},
            return_document=ReturnDocument.AFTER
        )
        return Order.from_dict(doc)

    def _validate_cart_items(self, cart: Cart) -> List[Tuple[LineItem, Product]]:
        """모든 라인을 현재 상품 정보로 검증합니다. 하나라도 실패하면 아무것도 변경하지 않습니다."""
        validated = []
        for item in cart.items:
            doc = self.mongo.products.find_one({'_id': to_object_id(item.product_id)})
            product = Product.from_dict(doc) if doc else None
            if not product or not product.is_active:
                raise BadRequestError(
                    f'Product "{item.name_snapshot}" is no longer available. Please remove it from your cart.'
                )
            if not product.has_stock_for(item.quantity):
                raise BadRequestError(
                    f'Insufficient stock for "{product.name}". Only {product.stock_qty} available.'
                )
            validated.append((item, product))
        return validated

    def _restore_stock(self, items: List[LineItem]):
        for item in items:
            self.mongo.products.update_one(
                {'_id': to_object_id(item.product_id), 'stock_qty': {'$ne': None}},
                {'$inc': {'stock_qty': item.quantity}}
            )

    def _reserve_stock(self, validated: List[Tuple[LineItem, Product]]):
        """
        재고를 추적하는 상품만 stock_qty >= 수량 조건으로 차감합니다.
        중간에 실패하면 앞서 차감한 재고를 되돌립니다.
        """
        reserved: List[LineItem] = []
        for item, product in validated:
            if product.stock_qty is None:
                continue
            updated = self.mongo.products.find_one_and_update(
                {'_id': to_object_id(product.id), 'stock_qty': {'$gte': item.quantity}},
                {'$inc': {'stock_qty': -item.quantity}},
                return_document=ReturnDocument.AFTER
            )
            if updated is None:
                self._restore_stock(reserved)
                current = self.mongo.products.find_one({'_id': to_object_id(product.id)}) or {}
                raise BadRequestError(
                    f'Insufficient stock for "{product.name}". Only {current.get("stock_qty", 0)} available.'
                )
            reserved.append(item)

    def create_order(self, user_id: str, payment_method: str, delivery_address: str,
                     notes: Optional[str] = None) -> Order:
        cart_doc = self.mongo.carts.find_one({'user_id': to_object_id(user_id)})
        cart = Cart.from_dict(cart_doc) if cart_doc else None
        if not cart or not cart.items:
            raise BadRequestError("Cart is empty")

        validated = self._validate_cart_items(cart)
        items = [LineItem.from_product(product, item.quantity) for item, product in validated]
        total_amount = round(sum(item.subtotal for item in items), 2)

        self._reserve_stock(validated)

        order = Order(
            user_id=user_id,
            items=items,
            total_amount=total_amount,
            payment_method=payment_method,
            delivery_address=delivery_address,
            notes=notes,
            payment=Payment(amount=total_amount, method=payment_method)
        )
        result = self.mongo.orders.insert_one(order.to_document())
        order.id = str(result.inserted_id)

        self.mongo.carts.update_one(
            {'_id': to_object_id(cart.id)},
            {'$set': {'items': [], 'updated_at': DateTimeUtils.now()}}
        )
        logging.info(f"Order {order.id} placed by user {user_id} (total: {total_amount}, method: {payment_method})")
        return order

    def list_orders(self, user_id: str, args: Dict[str, Any]) -> Tuple[List[Order], Dict[str, int]]:
        page, limit, skip = get_pagination(args, default_limit=10)
        query: Dict[str, Any] = {'user_id': to_object_id(user_id)}
        if args.get('status'):
            query['status'] = args['status'].lower()
        total = self.mongo.orders.count_documents(query)
        cursor = self.mongo.orders.find(query).sort('created_at', DESCENDING).skip(skip).limit(limit)
        return [Order.from_dict(doc) for doc in cursor], pagination_meta(total, page, limit)

    def get_order(self, order_id: str, user_id: str) -> Order:
        return self._get_owned_order(order_id, user_id)

    def cancel_order(self, order_id: str, user_id: str) -> Order:
        """대기(pending) 상태이고 결제가 끝나지 않은 주문만 취소할 수 있습니다. 차감된 재고는 복구됩니다."""
        order = self._get_owned_order(order_id, user_id)
        if order.status != OrderStatus.PENDING.value:
            raise BadRequestError(f'Cannot cancel order with status "{order.status}"')
        if order.is_paid:
            raise BadRequestError("Cannot cancel an order that has already been paid")

        updated = self.mongo.orders.find_one_and_update(
            {'_id': to_object_id(order_id), 'status': OrderStatus.PENDING.value},
            {'$set': {'status': OrderStatus.CANCELLED.value, 'updated_at': DateTimeUtils.now()}},
            return_document=ReturnDocument.AFTER
        )
        if updated is None:
            raise BadRequestError("Order status has changed. Please refresh and try again.")
        self._restore_stock(order.items)

        if order.payment and order.payment.status == PaymentStatus.PENDING.value:
            self._update(order_id, {
                'payment.status': PaymentStatus.FAILED.value,
                'payment.updated_at': DateTimeUtils.now()
            })
        logging.info(f"Order {order_id} cancelled by user {user_id}")
        return self.get_order(order_id, user_id)

    def initiate_khalti_payment(self, order_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
        user_id = str(user['_id'])
        order = self._get_owned_order(order_id, user_id)
        if order.status != OrderStatus.PENDING.value:
            raise BadRequestError(f'Cannot pay for order with status "{order.status}"')
        if order.payment_method != PaymentMethod.KHALTI.value:
            raise BadRequestError("This order does not use Khalti payment")
        if order.is_paid:
            raise BadRequestError("Order is already paid")

        session = self.khalti.initiate_payment(order.id, order.total_amount, user)
        payment = order.payment or Payment(amount=order.total_amount, method=order.payment_method)
        payment.pidx = session['pidx']
        payment.status = PaymentStatus.PENDING.value
        payment.updated_at = DateTimeUtils.now()
        self._update(order_id, {'payment': asdict(payment)})
        return session

    def confirm_payment(self, order_id: str, user_id: str, pidx: Optional[str] = None) -> Order:
        """
        Khalti 콜백 이후 결제를 확정합니다.
        클라이언트가 보낸 상태나 pidx는 신뢰하지 않고, 주문에 저장된 pidx로 Khalti에 다시 조회한 결과만 반영합니다.
        """
        order = self._get_owned_order(order_id, user_id)
        if order.is_paid:
            return order
        if order.status == OrderStatus.CANCELLED.value:
            raise BadRequestError('Cannot confirm payment for order with status "cancelled"')
        if order.payment_method != PaymentMethod.KHALTI.value:
            raise BadRequestError("This order does not use Khalti payment")

        stored_pidx = order.payment.pidx if order.payment else None
        if not stored_pidx:
            raise BadRequestError("Payment has not been initiated for this order")
        if pidx and pidx != stored_pidx:
            raise BadRequestError("Payment identifier does not match this order")

        result = self.khalti.lookup_payment(stored_pidx)
        now = DateTimeUtils.now()
        if result.get('status') == KHALTI_COMPLETED:
            expected_amount = int(round(order.total_amount * 100))
            if result.get('pidx') != stored_pidx or result.get('total_amount') != expected_amount:
                logging.error(
                    f"Order {order_id} Khalti lookup mismatch "
                    f"(pidx: {result.get('pidx')}, amount: {result.get('total_amount')}, expected: {expected_amount})"
                )
                raise BadRequestError("Payment details do not match this order")
            updated = self._update(order_id, {
                'status': OrderStatus.CONFIRMED.value,
                'payment.status': PaymentStatus.COMPLETED.value,
                'payment.transaction_id': result.get('transaction_id'),
                'payment.updated_at': now
            })
            logging.info(f"Order {order_id} payment completed (pidx: {stored_pidx})")
            return updated

        logging.info(f"Order {order_id} payment not completed: Khalti status '{result.get('status')}'")
        return self._update(order_id, {
            'payment.status': PaymentStatus.FAILED.value,
            'payment.updated_at': now
        })
