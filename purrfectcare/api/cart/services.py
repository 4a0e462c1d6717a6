# purrfectcare/api/cart/services.py
import logging
from typing import Any, Optional

from pymongo import ReturnDocument

from purrfectcare.core.errors import BadRequestError, NotFoundError
from purrfectcare.models.cart import Cart, LineItem
from purrfectcare.models.product import Product
from purrfectcare.services.mongo_service import MongoService
from purrfectcare.utils.datetime_utils import DateTimeUtils
from purrfectcare.utils.query_utils import to_object_id, parse_int

class CartService:
    """
    사용자별 장바구니 서비스.
    담을 때마다 상품의 가격/이름/대표 이미지를 스냅샷으로 복사합니다.
    """
    def __init__(self, mongo: MongoService):
        self.mongo = mongo

    @staticmethod
    def _parse_quantity(quantity: Any) -> int:
        if isinstance(quantity, bool) or (isinstance(quantity, float) and not quantity.is_integer()):
            qty = None
        else:
            qty = parse_int(quantity)
        if not qty or qty < 1:
            raise BadRequestError("Quantity must be a positive integer")
        return qty

    @staticmethod
    def _check_product_id(product_id: Any):
        if not to_object_id(product_id):
            raise BadRequestError("Invalid product ID")

    def _find_product(self, product_id: str) -> Optional[Product]:
        doc = self.mongo.products.find_one({'_id': to_object_id(product_id)})
        return Product.from_dict(doc) if doc else None

    def _find_cart(self, user_id: str) -> Cart:
        doc = self.mongo.carts.find_one({'user_id': to_object_id(user_id)})
        if not doc:
            raise NotFoundError("Cart not found")
        return Cart.from_dict(doc)

    def _save(self, cart: Cart) -> Cart:
        cart.updated_at = DateTimeUtils.now()
        doc = cart.to_document()
        self.mongo.carts.update_one(
            {'_id': to_object_id(cart.id)},
            {'$set': {'items': doc['items'], 'updated_at': doc['updated_at']}}
        )
        return cart

    def get_or_create_cart(self, user_id: str) -> Cart:
        """
        장바구니가 없으면 생성합니다.
        user_id 고유 인덱스와 upsert로 동시 요청에서도 하나만 만들어집니다.
        """
        now = DateTimeUtils.now()
        doc = self.mongo.carts.find_one_and_update(
            {'user_id': to_object_id(user_id)},
            {'$setOnInsert': {'items': [], 'created_at': now, 'updated_at': now}},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        return Cart.from_dict(doc)

    def add_item(self, user_id: str, product_id: str, quantity: Any = 1) -> Cart:
        self._check_product_id(product_id)
        qty = self._parse_quantity(1 if quantity is None else quantity)

        product = self._find_product(product_id)
        if not product:
            raise NotFoundError("Product not found")
        if not product.is_active:
            raise BadRequestError("Product is no longer available")
        if not product.has_stock_for(qty):
            raise BadRequestError(f"Only {product.stock_qty} items available in stock")

        cart = self.get_or_create_cart(user_id)
        item = cart.find_item(product.id)
        if item:
            new_qty = item.quantity + qty
            if not product.has_stock_for(new_qty):
                raise BadRequestError(f"Cannot add more. Only {product.stock_qty} items available in stock")
            item.quantity = new_qty
            item.refresh_snapshot(product)
        else:
            cart.items.append(LineItem.from_product(product, qty))

        logging.info(f"Cart {cart.id}: product {product.id} x{qty} added")
        return self._save(cart)

    def update_item_quantity(self, user_id: str, product_id: str, quantity: Any) -> Cart:
        self._check_product_id(product_id)
        qty = self._parse_quantity(quantity)

        cart = self._find_cart(user_id)
        item = cart.find_item(product_id)
        if not item:
            raise NotFoundError("Item not found in cart")

        product = self._find_product(product_id)
        if product and not product.has_stock_for(qty):
            raise BadRequestError(f"Only {product.stock_qty} items available in stock")

        item.quantity = qty
        # 판매 중인 상품이면 최신 정보로 스냅샷을 갱신합니다.
        if product and product.is_active:
            item.refresh_snapshot(product)
        return self._save(cart)

    def remove_item(self, user_id: str, product_id: str) -> Cart:
        self._check_product_id(product_id)
        cart = self._find_cart(user_id)
        if not cart.find_item(product_id):
            raise NotFoundError("Item not found in cart")
        cart.items = [item for item in cart.items if item.product_id != product_id]
        return self._save(cart)

    def clear_cart(self, user_id: str) -> Cart:
        cart = self._find_cart(user_id)
        cart.items = []
        return self._save(cart)
