# purrfectcare/api/products/services.py
import logging
from typing import Dict, Any, List, Tuple

from pymongo import ReturnDocument, DESCENDING

from purrfectcare.core.errors import BadRequestError, ForbiddenError, NotFoundError
from purrfectcare.models.product import Product
from purrfectcare.models.user import UserRole
from purrfectcare.services.mongo_service import MongoService
from purrfectcare.utils.datetime_utils import DateTimeUtils
from purrfectcare.utils.query_utils import (
    to_object_id, get_pagination, pagination_meta, sort_spec, contains_regex, parse_float
)

PRODUCT_PAGE_SIZE = 12

SORTABLE_FIELDS = {
    "createdAt": "created_at",
    "price": "price",
    "name": "name",
    "updatedAt": "updated_at",
}

class ProductService:
    """마켓플레이스 상품 카탈로그 서비스. 삭제는 is_active=False 소프트 삭제입니다."""
    def __init__(self, mongo: MongoService):
        self.mongo = mongo

    def _find(self, product_id: str) -> Product:
        oid = to_object_id(product_id)
        if not oid:
            raise BadRequestError("Invalid product ID")
        doc = self.mongo.products.find_one({'_id': oid})
        if not doc:
            raise NotFoundError("Product not found")
        return Product.from_dict(doc)

    def _check_manage_permission(self, product: Product, user: Dict[str, Any], action: str):
        """등록한 관리자 본인 또는 SUPER_ADMIN만 수정/삭제할 수 있습니다."""
        is_owner = product.created_by == str(user['_id'])
        if not is_owner and user.get('roles') != UserRole.SUPER_ADMIN.value:
            raise ForbiddenError(f"Access denied. You can only {action} your own products.")

    def create_product(self, admin_id: str, data: Dict[str, Any]) -> Product:
        product = Product(created_by=admin_id, **data)
        result = self.mongo.products.insert_one(product.to_document())
        product.id = str(result.inserted_id)
        logging.info(f"Product {product.id} created by admin {admin_id}")
        return product

    def list_products(self, args: Dict[str, Any]) -> Tuple[List[Product], Dict[str, int]]:
        """공개 목록. 판매 중(is_active)인 상품만 조회됩니다."""
        page, limit, skip = get_pagination(args, default_limit=PRODUCT_PAGE_SIZE)
        query: Dict[str, Any] = {'is_active': True}
        if args.get('search'):
            query['$or'] = [
                {'name': contains_regex(args['search'])},
                {'description': contains_regex(args['search'])},
            ]
        if args.get('category'):
            query['category'] = args['category'].lower()
        if args.get('petType'):
            query['pet_type'] = args['petType'].lower()

        price_range = {}
        min_price = parse_float(args.get('minPrice'))
        max_price = parse_float(args.get('maxPrice'))
        if min_price is not None:
            price_range['$gte'] = min_price
        if max_price is not None:
            price_range['$lte'] = max_price
        if price_range:
            query['price'] = price_range

        sort_field = SORTABLE_FIELDS.get(args.get('sort'), 'created_at')
        total = self.mongo.products.count_documents(query)
        cursor = (self.mongo.products.find(query)
                  .sort(sort_spec(sort_field, args.get('order', 'desc')))
                  .skip(skip).limit(limit))
        return [Product.from_dict(doc) for doc in cursor], pagination_meta(total, page, limit)

    def list_admin_products(self, args: Dict[str, Any]) -> Tuple[List[Product], Dict[str, int]]:
        """관리자 목록. 판매 중지 상품도 포함하며 isActive로 필터링할 수 있습니다."""
        page, limit, skip = get_pagination(args, default_limit=PRODUCT_PAGE_SIZE)
        query: Dict[str, Any] = {}
        if args.get('isActive') is not None:
            query['is_active'] = str(args['isActive']).lower() == 'true'
        if args.get('search'):
            query['name'] = contains_regex(args['search'])
        if args.get('category'):
            query['category'] = args['category'].lower()

        total = self.mongo.products.count_documents(query)
        cursor = self.mongo.products.find(query).sort('created_at', DESCENDING).skip(skip).limit(limit)
        return [Product.from_dict(doc) for doc in cursor], pagination_meta(total, page, limit)

    def get_product(self, product_id: str) -> Product:
        product = self._find(product_id)
        if not product.is_active:
            raise NotFoundError("Product is no longer available")
        return product

    def update_product(self, product_id: str, user: Dict[str, Any], data: Dict[str, Any]) -> Product:
        product = self._find(product_id)
        self._check_manage_permission(product, user, "edit")
        if not data:
            raise BadRequestError("No update data provided")

        updates = {k: v for k, v in data.items() if k not in ('id', 'created_by')}
        updates['updated_at'] = DateTimeUtils.now()
        doc = self.mongo.products.find_one_and_update(
            {'_id': to_object_id(product_id)},
            {'$set': updates},
            return_document=ReturnDocument.AFTER
        )
        logging.info(f"Product {product_id} updated with fields: {list(data.keys())}")
        return Product.from_dict(doc)

    def delete_product(self, product_id: str, user: Dict[str, Any]) -> Product:
        product = self._find(product_id)
        self._check_manage_permission(product, user, "delete")
        doc = self.mongo.products.find_one_and_update(
            {'_id': to_object_id(product_id)},
            {'$set': {'is_active': False, 'updated_at': DateTimeUtils.now()}},
            return_document=ReturnDocument.AFTER
        )
        logging.info(f"Product {product_id} deactivated by {user['_id']}")
        return Product.from_dict(doc)
