# conftest.py
"""
공용 pytest 픽스처.
앱은 TestingConfig와 mongomock 클라이언트로 생성되며, 테스트마다 새 인메모리 DB를 사용합니다.
"""
from functools import lru_cache

import mongomock
import pytest
from bson import ObjectId

from purrfectcare import create_app
from purrfectcare.core.security import hash_password, issue_auth_token
from purrfectcare.models.product import Product
from purrfectcare.models.user import User

DEFAULT_PASSWORD = "Password123!"

@lru_cache(maxsize=None)
def _hashed(password: str) -> str:
    # bcrypt 해시는 느리므로 같은 비밀번호는 한 번만 계산합니다.
    return hash_password(password)

@pytest.fixture
def app():
    return create_app('testing', mongo_client=mongomock.MongoClient())

@pytest.fixture
def client(app):
    return app.test_client()

@pytest.fixture
def mongo(app):
    return app.services['mongo']

@pytest.fixture
def make_user(mongo):
    """사용자 문서를 직접 생성합니다. 기본값은 이메일 인증이 끝난 일반 사용자입니다."""
    counter = {'n': 0}

    def _make_user(email=None, password=DEFAULT_PASSWORD, name="Test User", roles="USER", is_verified=True, **extra):
        counter['n'] += 1
        user = User(
            name=name,
            email=email or f"user{counter['n']}@example.com",
            password=_hashed(password),
            roles=roles,
            is_verified=is_verified,
            **extra
        )
        doc = user.to_document()
        doc['_id'] = mongo.users.insert_one(doc).inserted_id
        return doc

    return _make_user

@pytest.fixture
def auth_headers(app):
    """사용자 문서로 Bearer 토큰 헤더를 만듭니다."""
    def _auth_headers(user):
        with app.app_context():
            token = issue_auth_token(user)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers

@pytest.fixture
def make_product(mongo):
    def _make_product(created_by=None, **fields):
        data = {"name": "Salmon Kibble", "price": 250.0, "category": "food", "pet_type": "cat", **fields}
        product = Product(created_by=str(created_by) if created_by else None, **data)
        doc = product.to_document()
        product.id = str(mongo.products.insert_one(doc).inserted_id)
        return product

    return _make_product

@pytest.fixture
def object_id():
    return lambda: str(ObjectId())
