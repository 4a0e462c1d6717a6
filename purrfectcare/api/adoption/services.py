# purrfectcare/api/adoption/services.py
import logging
from typing import Dict, Any, List, Tuple, Iterable, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from purrfectcare.api.pets.services import PetService
from purrfectcare.core.errors import BadRequestError, ForbiddenError, NotFoundError
from purrfectcare.models.adoption import AdoptionListing, AdoptionApplication, ListingStatus, ApplicationStatus
from purrfectcare.models.provider_application import ProviderApplicationStatus
from purrfectcare.models.user import UserRole
from purrfectcare.services.mongo_service import MongoService
from purrfectcare.utils.datetime_utils import DateTimeUtils
from purrfectcare.utils.query_utils import (
    to_object_id, get_pagination, pagination_meta, sort_spec, contains_regex, parse_int
)
from .schemas import AdoptionListingResponseSchema, AdoptionApplicationResponseSchema

SIBLING_REJECTION_NOTE = "Another application was approved for this pet."

SORTABLE_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "age": "age",
    "name": "name",
    "adoptionFee": "adoption_fee",
}

def _sort_field(args: Dict[str, Any]) -> str:
    return SORTABLE_FIELDS.get(args.get('sort'), 'created_at')

def _user_summaries(mongo: MongoService, user_ids: Iterable[str], extra_fields: Tuple[str, ...] = ()) -> Dict[str, Dict[str, Any]]:
    """
    사용자 ID 목록을 {id: {_id, name, profileImage, ...}} 형태의 요약 정보로 변환합니다.
    extra_fields에는 'email', 'phoneNumber'를 지정할 수 있습니다.
    """
    oids = [oid for oid in (to_object_id(uid) for uid in set(user_ids)) if oid]
    if not oids:
        return {}
    field_map = {'email': 'email', 'phoneNumber': 'phone_number'}
    summaries = {}
    for doc in mongo.users.find({'_id': {'$in': oids}}):
        summary = {"_id": str(doc['_id']), "name": doc.get('name'), "profileImage": doc.get('profile_image')}
        for key in extra_fields:
            summary[key] = doc.get(field_map[key])
        summaries[str(doc['_id'])] = summary
    return summaries


class AdoptionListingService:
    """입양 공고 서비스. 공고 관리는 등록한 관리자 본인 또는 SUPER_ADMIN만 가능합니다."""
    def __init__(self, mongo: MongoService):
        self.mongo = mongo

    def _dump_with_posters(self, listings: List[AdoptionListing]) -> List[Dict[str, Any]]:
        posters = _user_summaries(self.mongo, [l.posted_by for l in listings])
        results = []
        for listing in listings:
            data = AdoptionListingResponseSchema().dump(listing)
            data['postedBy'] = posters.get(listing.posted_by, {"_id": listing.posted_by})
            results.append(data)
        return results

    def _paginate(self, query: Dict[str, Any], args: Dict[str, Any], default_limit: int) -> Tuple[List[AdoptionListing], Dict[str, int]]:
        page, limit, skip = get_pagination(args, default_limit=default_limit)
        total = self.mongo.adoption_listings.count_documents(query)
        cursor = (self.mongo.adoption_listings.find(query)
                  .sort(sort_spec(_sort_field(args), args.get('order', 'desc')))
                  .skip(skip).limit(limit))
        return [AdoptionListing.from_dict(doc) for doc in cursor], pagination_meta(total, page, limit)

    def find_listing(self, listing_id: str) -> AdoptionListing:
        oid = to_object_id(listing_id)
        if not oid:
            raise BadRequestError("Invalid listing ID")
        doc = self.mongo.adoption_listings.find_one({'_id': oid})
        if not doc or doc.get('is_deleted'):
            raise NotFoundError("Listing not found")
        return AdoptionListing.from_dict(doc)

    def verify_ownership(self, listing_id: str, user: Dict[str, Any]) -> AdoptionListing:
        listing = self.find_listing(listing_id)
        is_owner = listing.posted_by == str(user['_id'])
        if not is_owner and user.get('roles') != UserRole.SUPER_ADMIN.value:
            raise ForbiddenError("Access denied. You can only manage your own listings.")
        return listing

    def create_listing(self, user_id: str, data: Dict[str, Any]) -> AdoptionListing:
        listing = AdoptionListing(posted_by=user_id, **{'age': 0, **data})
        result = self.mongo.adoption_listings.insert_one(listing.to_document())
        listing.id = str(result.inserted_id)
        logging.info(f"Adoption listing {listing.id} created by {user_id}")
        return listing

    def list_listings(self, args: Dict[str, Any]) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
        """[공개] 입양 가능한 공고 목록. 이름/품종/설명 검색과 종, 성별, 나이(개월), 지역 필터를 지원합니다."""
        query: Dict[str, Any] = {'status': ListingStatus.AVAILABLE.value, 'is_deleted': {'$ne': True}}
        if args.get('search'):
            query['$or'] = [
                {'name': contains_regex(args['search'])},
                {'breed': contains_regex(args['search'])},
                {'description': contains_regex(args['search'])},
            ]
        if args.get('species'):
            query['species'] = args['species'].lower()
        if args.get('gender'):
            query['gender'] = args['gender'].lower()

        age_range = {}
        min_age = parse_int(args.get('minAge'))
        max_age = parse_int(args.get('maxAge'))
        if min_age is not None:
            age_range['$gte'] = min_age
        if max_age is not None:
            age_range['$lte'] = max_age
        if age_range:
            query['age'] = age_range
        if args.get('location'):
            query['location'] = contains_regex(args['location'])

        listings, pagination = self._paginate(query, args, default_limit=12)
        return self._dump_with_posters(listings), pagination

    def get_listing_detail(self, listing_id: str) -> Dict[str, Any]:
        """공고 상세. 등록자가 승인된 서비스 제공자이면 organizationName을 함께 반환합니다."""
        listing = self.find_listing(listing_id)
        data = AdoptionListingResponseSchema().dump(listing)
        poster = _user_summaries(self.mongo, [listing.posted_by], extra_fields=('phoneNumber',))
        data['postedBy'] = poster.get(listing.posted_by, {"_id": listing.posted_by})

        provider = self.mongo.provider_applications.find_one({
            'user_id': to_object_id(listing.posted_by),
            'status': ProviderApplicationStatus.APPROVED.value
        })
        if provider:
            data['postedBy']['organizationName'] = provider.get('organization_name')
        return data

    def list_my_listings(self, user_id: str, args: Dict[str, Any]) -> Tuple[List[AdoptionListing], Dict[str, int]]:
        query: Dict[str, Any] = {'posted_by': to_object_id(user_id), 'is_deleted': {'$ne': True}}
        if args.get('status'):
            query['status'] = args['status'].lower()
        return self._paginate(query, args, default_limit=10)

    def update_listing(self, listing_id: str, user: Dict[str, Any], data: Dict[str, Any]) -> AdoptionListing:
        listing = self.verify_ownership(listing_id, user)
        if listing.status == ListingStatus.ADOPTED.value:
            raise BadRequestError("Cannot edit a listing that has already been adopted")
        if not data:
            raise BadRequestError("No update data provided")

        updates = dict(data)
        updates['updated_at'] = DateTimeUtils.now()
        doc = self.mongo.adoption_listings.find_one_and_update(
            {'_id': to_object_id(listing_id)},
            {'$set': updates},
            return_document=ReturnDocument.AFTER
        )
        return AdoptionListing.from_dict(doc)

    def delete_listing(self, listing_id: str, user: Dict[str, Any]) -> AdoptionListing:
        self.verify_ownership(listing_id, user)
        now = DateTimeUtils.now()
        doc = self.mongo.adoption_listings.find_one_and_update(
            {'_id': to_object_id(listing_id)},
            {'$set': {'is_deleted': True, 'deleted_at': now, 'updated_at': now}},
            return_document=ReturnDocument.AFTER
        )
        logging.info(f"Adoption listing {listing_id} soft deleted by {user['_id']}")
        return AdoptionListing.from_dict(doc)


class AdoptionApplicationService:
    """
    입양 신청 서비스.
    승인 시 공고를 입양 완료로 바꾸고, 같은 공고의 다른 대기 신청을 거절하며,
    입양자의 반려동물 프로필을 자동으로 생성합니다.
    """
    def __init__(self, mongo: MongoService, listings: AdoptionListingService, pets: PetService):
        self.mongo = mongo
        self.listings = listings
        self.pets = pets

    def _find_application(self, application_id: str) -> AdoptionApplication:
        oid = to_object_id(application_id)
        if not oid:
            raise BadRequestError("Invalid application ID")
        doc = self.mongo.adoption_applications.find_one({'_id': oid})
        if not doc:
            raise NotFoundError("Application not found")
        return AdoptionApplication.from_dict(doc)

    def _listing_summaries(self, listing_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        oids = [oid for oid in (to_object_id(lid) for lid in set(listing_ids)) if oid]
        listings = [AdoptionListing.from_dict(doc) for doc in self.mongo.adoption_listings.find({'_id': {'$in': oids}})]
        posters = _user_summaries(self.mongo, [l.posted_by for l in listings])
        summaries = {}
        for listing in listings:
            summaries[listing.id] = {
                "_id": listing.id,
                "name": listing.name,
                "species": listing.species,
                "breed": listing.breed,
                "gender": listing.gender,
                "age": listing.age,
                "photos": listing.photos,
                "status": listing.status,
                "location": listing.location,
                "postedBy": posters.get(listing.posted_by, {"_id": listing.posted_by}),
            }
        return summaries

    def _dump(self, applications: List[AdoptionApplication], with_applicant: bool = False,
              with_listing: bool = False) -> List[Dict[str, Any]]:
        applicants = _user_summaries(
            self.mongo, [a.applicant_id for a in applications], extra_fields=('email', 'phoneNumber')
        ) if with_applicant else {}
        listings = self._listing_summaries([a.listing_id for a in applications]) if with_listing else {}

        results = []
        for application in applications:
            data = AdoptionApplicationResponseSchema().dump(application)
            if with_applicant:
                data['applicantId'] = applicants.get(application.applicant_id, {"_id": application.applicant_id})
            if with_listing:
                data['listingId'] = listings.get(application.listing_id, application.listing_id)
            results.append(data)
        return results

    def _paginate(self, query: Dict[str, Any], args: Dict[str, Any]) -> Tuple[List[AdoptionApplication], Dict[str, int]]:
        if args.get('status'):
            query['status'] = args['status'].lower()
        page, limit, skip = get_pagination(args, default_limit=10)
        total = self.mongo.adoption_applications.count_documents(query)
        cursor = (self.mongo.adoption_applications.find(query)
                  .sort(sort_spec(_sort_field(args), args.get('order', 'desc')))
                  .skip(skip).limit(limit))
        return [AdoptionApplication.from_dict(doc) for doc in cursor], pagination_meta(total, page, limit)

    def create_application(self, applicant_id: str, listing_id: str, data: Dict[str, Any]) -> AdoptionApplication:
        listing = self.listings.find_listing(listing_id)
        if listing.status != ListingStatus.AVAILABLE.value:
            raise BadRequestError("This pet is no longer available for adoption")
        if listing.posted_by == applicant_id:
            raise BadRequestError("You cannot apply for your own listing")

        duplicate = self.mongo.adoption_applications.find_one({
            'listing_id': to_object_id(listing_id),
            'applicant_id': to_object_id(applicant_id)
        })
        if duplicate:
            raise BadRequestError("You have already applied for this pet")

        application = AdoptionApplication(listing_id=listing_id, applicant_id=applicant_id, **data)
        try:
            result = self.mongo.adoption_applications.insert_one(application.to_document())
        except DuplicateKeyError:
            raise BadRequestError("You have already applied for this pet")
        application.id = str(result.inserted_id)
        logging.info(f"Adoption application {application.id} submitted for listing {listing_id} by {applicant_id}")
        return application

    def list_my_applications(self, user_id: str, args: Dict[str, Any]) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
        applications, pagination = self._paginate({'applicant_id': to_object_id(user_id)}, args)
        return self._dump(applications, with_listing=True), pagination

    def list_listing_applications(self, listing_id: str, user: Dict[str, Any], args: Dict[str, Any]) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
        self.listings.verify_ownership(listing_id, user)
        applications, pagination = self._paginate({'listing_id': to_object_id(listing_id)}, args)
        return self._dump(applications, with_applicant=True), pagination

    def list_all_applications(self, user: Dict[str, Any], args: Dict[str, Any]) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
        """SUPER_ADMIN은 전체, ADMIN은 본인 공고에 들어온 신청만 조회합니다."""
        query: Dict[str, Any] = {}
        if user.get('roles') != UserRole.SUPER_ADMIN.value:
            query['listing_id'] = {'$in': self._own_listing_ids(str(user['_id']))}
        applications, pagination = self._paginate(query, args)
        return self._dump(applications, with_applicant=True, with_listing=True), pagination

    def get_application_detail(self, application_id: str, user_id: str) -> Dict[str, Any]:
        application = self._find_application(application_id)
        listing_doc = self.mongo.adoption_listings.find_one({'_id': to_object_id(application.listing_id)}) or {}
        is_applicant = application.applicant_id == user_id
        is_listing_owner = str(listing_doc.get('posted_by')) == user_id
        if not is_applicant and not is_listing_owner:
            raise ForbiddenError("Access denied. You do not have permission to view this application.")
        return self._dump([application], with_applicant=True, with_listing=True)[0]

    def approve_application(self, application_id: str, user: Dict[str, Any], review_notes: Optional[str] = None) -> AdoptionApplication:
        application = self._find_application(application_id)
        if application.status != ApplicationStatus.PENDING.value:
            raise BadRequestError(f"Cannot approve an application that is already {application.status}")
        listing = self.listings.verify_ownership(application.listing_id, user)

        now = DateTimeUtils.now()
        # 공고를 먼저 조건부로 입양 완료 처리해 동시에 두 신청이 승인되지 않도록 합니다.
        adopted = self.mongo.adoption_listings.find_one_and_update(
            {'_id': to_object_id(listing.id), 'status': ListingStatus.AVAILABLE.value},
            {'$set': {
                'status': ListingStatus.ADOPTED.value,
                'adopted_by': to_object_id(application.applicant_id),
                'adopted_at': now,
                'updated_at': now
            }},
            return_document=ReturnDocument.AFTER
        )
        if adopted is None:
            raise BadRequestError("This pet has already been adopted")

        approved_updates = {'status': ApplicationStatus.APPROVED.value, 'reviewed_at': now, 'updated_at': now}
        if review_notes:
            approved_updates['review_notes'] = review_notes
        approved = self.mongo.adoption_applications.find_one_and_update(
            {'_id': to_object_id(application_id), 'status': ApplicationStatus.PENDING.value},
            {'$set': approved_updates},
            return_document=ReturnDocument.AFTER
        )
        if approved is None:
            self.mongo.adoption_listings.update_one(
                {'_id': to_object_id(listing.id)},
                {'$set': {'status': ListingStatus.AVAILABLE.value, 'adopted_by': None,
                          'adopted_at': None, 'updated_at': now}}
            )
            raise BadRequestError("Application status has changed. Please refresh and try again.")

        rejected = self.mongo.adoption_applications.update_many(
            {
                'listing_id': to_object_id(listing.id),
                '_id': {'$ne': to_object_id(application_id)},
                'status': ApplicationStatus.PENDING.value
            },
            {'$set': {
                'status': ApplicationStatus.REJECTED.value,
                'reviewed_at': now,
                'review_notes': SIBLING_REJECTION_NOTE,
                'updated_at': now
            }}
        )

        self._create_adopted_pet(application.applicant_id, listing)
        logging.info(
            f"Adoption application {application_id} approved; listing {listing.id} adopted, "
            f"{rejected.modified_count} other application(s) rejected"
        )
        return AdoptionApplication.from_dict(approved)

    def _create_adopted_pet(self, adopter_id: str, listing: AdoptionListing):
        """공고 정보로 입양자의 반려동물 프로필을 만듭니다. 공고 나이는 개월 수이므로 년 단위로 환산합니다."""
        age_months = listing.age or 0
        medical_notes = "\n".join(note for note in (listing.health_info, listing.special_needs) if note)
        self.pets.create_pet(adopter_id, {
            'name': listing.name,
            'species': listing.species,
            'gender': listing.gender,
            'breed': listing.breed or None,
            'age': round(age_months / 12, 1) or None,
            'date_of_birth': DateTimeUtils.estimate_birthdate_from_months(age_months) if age_months else None,
            'photos': list(listing.photos or []),
            'medical_notes': medical_notes or None,
        })

    def reject_application(self, application_id: str, user: Dict[str, Any], review_notes: Optional[str] = None) -> AdoptionApplication:
        application = self._find_application(application_id)
        if application.status != ApplicationStatus.PENDING.value:
            raise BadRequestError(f"Cannot reject an application that is already {application.status}")
        self.listings.verify_ownership(application.listing_id, user)

        now = DateTimeUtils.now()
        updates = {'status': ApplicationStatus.REJECTED.value, 'reviewed_at': now, 'updated_at': now}
        if review_notes:
            updates['review_notes'] = review_notes
        doc = self.mongo.adoption_applications.find_one_and_update(
            {'_id': to_object_id(application_id), 'status': ApplicationStatus.PENDING.value},
            {'$set': updates},
            return_document=ReturnDocument.AFTER
        )
        if doc is None:
            raise BadRequestError("Application status has changed. Please refresh and try again.")
        return AdoptionApplication.from_dict(doc)

    def _own_listing_ids(self, user_id: str) -> list:
        cursor = self.mongo.adoption_listings.find(
            {'posted_by': to_object_id(user_id), 'is_deleted': {'$ne': True}}, {'_id': 1}
        )
        return [doc['_id'] for doc in cursor]

    def get_stats(self, user_id: str) -> Dict[str, Any]:
        """관리자 대시보드용 통계. 본인이 등록한 공고와 그 공고에 들어온 신청만 집계합니다."""
        base = {'posted_by': to_object_id(user_id), 'is_deleted': {'$ne': True}}
        listings = self.mongo.adoption_listings
        listing_ids = self._own_listing_ids(user_id)
        applications = self.mongo.adoption_applications
        app_query = {'listing_id': {'$in': listing_ids}}

        return {
            "listings": {
                "total": listings.count_documents(base),
                "available": listings.count_documents({**base, 'status': ListingStatus.AVAILABLE.value}),
                "adopted": listings.count_documents({**base, 'status': ListingStatus.ADOPTED.value}),
            },
            "applications": {
                "total": applications.count_documents(app_query),
                "pending": applications.count_documents({**app_query, 'status': ApplicationStatus.PENDING.value}),
                "approved": applications.count_documents({**app_query, 'status': ApplicationStatus.APPROVED.value}),
                "rejected": applications.count_documents({**app_query, 'status': ApplicationStatus.REJECTED.value}),
            },
        }
