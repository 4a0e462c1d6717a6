# purrfectcare/api/pets/services.py
import logging
from typing import Dict, Any, List, Tuple

from pymongo import ReturnDocument, DESCENDING

from purrfectcare.core.errors import BadRequestError, ForbiddenError, NotFoundError
from purrfectcare.models.pet import Pet, MAX_PHOTOS_PER_PET
from purrfectcare.services.mongo_service import MongoService
from purrfectcare.utils.datetime_utils import DateTimeUtils
from purrfectcare.utils.query_utils import (
    to_object_id, get_pagination, pagination_meta, sort_spec, contains_regex
)

# 정렬 허용 필드 (API 이름 -> 저장 필드)
SORTABLE_FIELDS = {
    "name": "name",
    "species": "species",
    "age": "age",
    "dateOfBirth": "date_of_birth",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

class PetService:
    """반려동물 프로필 관리를 전담하는 서비스. 모든 작업은 소유자 본인만 수행할 수 있습니다."""
    def __init__(self, mongo: MongoService):
        self.mongo = mongo
        logging.info("PetService initialized with dependencies.")

    def _get_owned_pet(self, pet_id: str, user_id: str, action: str = "access", include_deleted: bool = False) -> Pet:
        """
        반려동물을 조회하고 소유권을 확인합니다.
        없으면 404, 다른 사용자의 반려동물이면 403을 발생시킵니다.
        """
        oid = to_object_id(pet_id)
        doc = self.mongo.pets.find_one({'_id': oid}) if oid else None
        if not doc or (doc.get('is_deleted') and not include_deleted):
            raise NotFoundError("Pet not found", "PET_NOT_FOUND")
        pet = Pet.from_dict(doc)
        if pet.user_id != user_id:
            raise ForbiddenError(f"You do not have permission to {action} this pet")
        return pet

    def _update(self, pet_id: str, updates: Dict[str, Any]) -> Pet:
        updates['updated_at'] = DateTimeUtils.now()
        doc = self.mongo.pets.find_one_and_update(
            {'_id': to_object_id(pet_id)},
            {'$set': updates},
            return_document=ReturnDocument.AFTER
        )
        return Pet.from_dict(doc)

    def create_pet(self, user_id: str, pet_data: Dict[str, Any]) -> Pet:
        # None 값은 모델 기본값을 사용합니다.
        new_pet = Pet(user_id=user_id, **{k: v for k, v in pet_data.items() if v is not None})
        result = self.mongo.pets.insert_one(new_pet.to_document())
        new_pet.id = str(result.inserted_id)
        logging.info(f"Pet {new_pet.id} registered for user {user_id}")
        return self.get_pet(new_pet.id, user_id)

    def list_pets(self, user_id: str, args: Dict[str, Any]) -> Tuple[List[Pet], Dict[str, int]]:
        """내 반려동물 목록. species, name, breed 필터와 정렬, 페이지네이션을 지원합니다."""
        page, limit, skip = get_pagination(args, default_limit=10)
        query: Dict[str, Any] = {'user_id': to_object_id(user_id)}
        if str(args.get('includeDeleted', '')).lower() != 'true':
            query['is_deleted'] = {'$ne': True}
        if args.get('species'):
            query['species'] = args['species'].strip().lower()
        if args.get('name'):
            query['name'] = contains_regex(args['name'])
        if args.get('breed'):
            query['breed'] = contains_regex(args['breed'])

        sort_field = SORTABLE_FIELDS.get(args.get('sortBy'), 'created_at')
        total = self.mongo.pets.count_documents(query)
        cursor = (self.mongo.pets.find(query)
                  .sort(sort_spec(sort_field, args.get('sortOrder', 'desc')))
                  .skip(skip).limit(limit))
        return [Pet.from_dict(doc) for doc in cursor], pagination_meta(total, page, limit)

    def get_pet(self, pet_id: str, user_id: str) -> Pet:
        return self._get_owned_pet(pet_id, user_id)

    def update_pet(self, pet_id: str, user_id: str, update_data: Dict[str, Any]) -> Pet:
        self._get_owned_pet(pet_id, user_id, action="update")
        if not update_data:
            raise BadRequestError("No update data provided")
        if 'photos' in update_data and update_data['photos'] is None:
            update_data['photos'] = []
        if len(update_data.get('photos') or []) > MAX_PHOTOS_PER_PET:
            raise BadRequestError(f"Maximum {MAX_PHOTOS_PER_PET} photos allowed per pet")
        pet = self._update(pet_id, dict(update_data))
        logging.info(f"Pet profile updated for {pet_id} with fields: {list(update_data.keys())}")
        return pet

    def add_photos(self, pet_id: str, user_id: str, photos: List[str]) -> Pet:
        pet = self._get_owned_pet(pet_id, user_id, action="update")
        new_photos = [p.strip() for p in photos if isinstance(p, str) and p.strip()]
        if not new_photos:
            raise BadRequestError("No photos provided")
        if len(pet.photos) + len(new_photos) > MAX_PHOTOS_PER_PET:
            raise BadRequestError(
                f"Maximum {MAX_PHOTOS_PER_PET} photos allowed per pet. "
                f"Pet already has {len(pet.photos)} photos."
            )
        return self._update(pet_id, {'photos': pet.photos + new_photos})

    def delete_photo(self, pet_id: str, user_id: str, photo_url: str) -> Pet:
        pet = self._get_owned_pet(pet_id, user_id, action="update")
        if photo_url not in pet.photos:
            raise NotFoundError("Photo not found")
        return self._update(pet_id, {'photos': [p for p in pet.photos if p != photo_url]})

    def soft_delete_pet(self, pet_id: str, user_id: str) -> Pet:
        self._get_owned_pet(pet_id, user_id, action="delete")
        pet = self._update(pet_id, {'is_deleted': True, 'deleted_at': DateTimeUtils.now()})
        logging.info(f"Pet {pet_id} soft deleted by user {user_id}")
        return pet

    def permanently_delete_pet(self, pet_id: str, user_id: str) -> Pet:
        pet = self._get_owned_pet(pet_id, user_id, action="delete", include_deleted=True)
        self.mongo.pets.delete_one({'_id': to_object_id(pet_id)})
        logging.info(f"Pet {pet_id} permanently deleted by user {user_id}")
        return pet

    def restore_pet(self, pet_id: str, user_id: str) -> Pet:
        pet = self._get_owned_pet(pet_id, user_id, action="restore", include_deleted=True)
        if not pet.is_deleted:
            raise BadRequestError("Pet is not deleted")
        return self._update(pet_id, {'is_deleted': False, 'deleted_at': None})

    def get_statistics(self, user_id: str) -> Dict[str, Any]:
        """삭제되지 않은 반려동물 기준 통계. 평균 나이는 calculatedAge 기준이며 소수 첫째 자리까지."""
        match = {'user_id': to_object_id(user_id), 'is_deleted': {'$ne': True}}
        pets = [Pet.from_dict(doc) for doc in self.mongo.pets.find(match)]

        ages = [pet.calculated_age for pet in pets if pet.calculated_age is not None]
        average_age = round(sum(ages) / len(ages), 1) if ages else 0

        def _count_by(field_name: str) -> Dict[str, int]:
            pipeline = [
                {'$match': match},
                {'$group': {'_id': f'${field_name}', 'count': {'$sum': 1}}},
                {'$sort': {'count': DESCENDING}}
            ]
            return {str(row['_id']): row['count'] for row in self.mongo.pets.aggregate(pipeline)}

        return {
            "totalPets": len(pets),
            "averageAge": average_age,
            "countBySpecies": _count_by('species'),
            "countByGender": _count_by('gender'),
        }
