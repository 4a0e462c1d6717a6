# purrfectcare/services/mongo_service.py
import logging
from typing import Optional

from flask import Flask
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database

class MongoService:
    """
    MongoDB 연결과 컬렉션 핸들을 관리하는 공용 서비스 클래스입니다.
    실제 연결은 init_app에서 이루어지며, 테스트에서는 mongomock 클라이언트를 주입합니다.
    """

    def __init__(self):
        self.client: Optional[MongoClient] = None
        self.db: Optional[Database] = None

    def init_app(self, app: Flask, client: Optional[MongoClient] = None):
        """
        Flask 앱 초기화 과정에서 호출되어 데이터베이스 핸들을 설정합니다.

        :param app: Flask 애플리케이션 객체
        :param client: 외부에서 주입할 MongoClient (없으면 MONGODB_URL로 새로 생성)
        """
        if client is None:
            url = app.config.get('MONGODB_URL')
            if not url:
                raise ValueError("MONGODB_URL 설정이 .env 또는 설정 파일에 필요합니다.")
            client = MongoClient(url, tz_aware=True)
        self.client = client
        self.db = client[app.config['MONGODB_DB_NAME']]
        self.ensure_indexes()
        logging.info(f"MongoService: '{app.config['MONGODB_DB_NAME']}' 데이터베이스에 연결되었습니다.")

    def ensure_indexes(self):
        """동시 요청에서도 중복 데이터가 생기지 않도록 고유 인덱스를 생성합니다."""
        self.users.create_index([('email', ASCENDING)], unique=True)
        self.carts.create_index([('user_id', ASCENDING)], unique=True)
        self.adoption_applications.create_index(
            [('listing_id', ASCENDING), ('applicant_id', ASCENDING)], unique=True
        )
        self.pets.create_index([('user_id', ASCENDING), ('created_at', DESCENDING)])
        self.products.create_index([('is_active', ASCENDING), ('category', ASCENDING)])
        self.orders.create_index([('user_id', ASCENDING), ('created_at', DESCENDING)])
        self.adoption_listings.create_index([('status', ASCENDING), ('is_deleted', ASCENDING)])
        self.account_verifications.create_index([('user_id', ASCENDING)])
        self.password_resets.create_index([('user_id', ASCENDING)])
        self.provider_applications.create_index([('user_id', ASCENDING), ('status', ASCENDING)])

    def collection(self, name: str) -> Collection:
        if self.db is None:
            raise RuntimeError("MongoService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")
        return self.db[name]

    @property
    def users(self) -> Collection:
        return self.collection('users')

    @property
    def account_verifications(self) -> Collection:
        return self.collection('account_verifications')

    @property
    def password_resets(self) -> Collection:
        return self.collection('password_resets')

    @property
    def pets(self) -> Collection:
        return self.collection('pets')

    @property
    def products(self) -> Collection:
        return self.collection('products')

    @property
    def carts(self) -> Collection:
        return self.collection('carts')

    @property
    def orders(self) -> Collection:
        return self.collection('orders')

    @property
    def adoption_listings(self) -> Collection:
        return self.collection('adoption_listings')

    @property
    def adoption_applications(self) -> Collection:
        return self.collection('adoption_applications')

    @property
    def provider_applications(self) -> Collection:
        return self.collection('provider_applications')
