# purrfectcare/api/users/services.py
import logging
from dataclasses import asdict
from typing import Dict, Any, List, Optional

from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from purrfectcare.core.errors import BadRequestError, NotFoundError
from purrfectcare.core.security import hash_password
from purrfectcare.models.user import User, UserIntent, Address
from purrfectcare.services.mongo_service import MongoService
from purrfectcare.utils.datetime_utils import DateTimeUtils
from purrfectcare.utils.query_utils import to_object_id

class UserService:
    """사용자 계정 관리(조회, 수정, 삭제, 온보딩)를 담당하는 서비스."""
    def __init__(self, mongo: MongoService):
        self.mongo = mongo

    def create_user(self, data: Dict[str, Any]) -> User:
        """관리자용 사용자 생성. 비밀번호가 있으면 해시해서 저장합니다."""
        if data.get('password'):
            data['password'] = hash_password(data['password'])
        data['email'] = data['email'].strip().lower()
        user = User(**data)
        try:
            result = self.mongo.users.insert_one(user.to_document())
        except PyMongoError as e:
            logging.error(f"Error creating user: {e}")
            raise BadRequestError("Failed to create user")
        user.id = str(result.inserted_id)
        return user

    def list_users(self) -> List[User]:
        return [User.from_dict(doc) for doc in self.mongo.users.find().sort('created_at', -1)]

    def get_user(self, user_id: str) -> User:
        oid = to_object_id(user_id)
        doc = self.mongo.users.find_one({'_id': oid}) if oid else None
        if not doc:
            raise NotFoundError("User not found")
        return User.from_dict(doc)

    def update_user(self, user_id: str, update_data: Dict[str, Any]) -> User:
        """프로필 부분 수정. 주소는 넘어온 하위 필드만 덮어씁니다."""
        user = self.get_user(user_id)
        if not update_data:
            raise BadRequestError("No update data provided")

        updates = {k: v for k, v in update_data.items() if k != 'address'}
        address = update_data.get('address')
        if address:
            if user.address is None:
                # null 필드에는 하위 경로로 $set 할 수 없으므로 주소 전체를 새로 만듭니다.
                updates['address'] = asdict(Address(**address))
            else:
                for key, value in address.items():
                    updates[f'address.{key}'] = value
        updates['updated_at'] = DateTimeUtils.now()

        doc = self.mongo.users.find_one_and_update(
            {'_id': to_object_id(user_id)},
            {'$set': updates},
            return_document=ReturnDocument.AFTER
        )
        logging.info(f"User profile updated for {user_id} with fields: {list(update_data.keys())}")
        return User.from_dict(doc)

    def delete_user(self, user_id: str) -> User:
        user = self.get_user(user_id)
        self.mongo.users.delete_one({'_id': to_object_id(user_id)})
        logging.info(f"User deleted: {user_id}")
        return user

    def complete_onboarding(self, user_id: str, user_intent: Optional[str]) -> User:
        self.get_user(user_id)
        valid_intents = [e.value for e in UserIntent]
        if user_intent and user_intent not in valid_intents:
            raise BadRequestError("Invalid user intent")

        doc = self.mongo.users.find_one_and_update(
            {'_id': to_object_id(user_id)},
            {'$set': {
                'has_completed_onboarding': True,
                'user_intent': user_intent or None,
                'updated_at': DateTimeUtils.now()
            }},
            return_document=ReturnDocument.AFTER
        )
        return User.from_dict(doc)
