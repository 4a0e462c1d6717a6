# purrfectcare/api/admin/services.py
import logging
from typing import Dict, Any, List, Tuple, Optional

from pymongo import ReturnDocument, DESCENDING

from purrfectcare.core.errors import BadRequestError, NotFoundError
from purrfectcare.models.provider_application import ProviderApplication, ProviderApplicationStatus
from purrfectcare.models.user import UserRole
from purrfectcare.services.mongo_service import MongoService
from purrfectcare.utils.datetime_utils import DateTimeUtils
from purrfectcare.utils.query_utils import to_object_id, get_pagination, pagination_meta
from .schemas import ProviderApplicationResponseSchema

class ProviderApplicationService:
    """
    서비스 제공자(관리자) 신청 처리.
    SUPER_ADMIN이 승인하면 신청자의 역할이 ADMIN으로 바뀝니다.
    """
    def __init__(self, mongo: MongoService):
        self.mongo = mongo

    def _find_pending(self, application_id: str, action: str) -> ProviderApplication:
        oid = to_object_id(application_id)
        if not oid:
            raise BadRequestError("Invalid application ID")
        doc = self.mongo.provider_applications.find_one({'_id': oid})
        if not doc:
            raise NotFoundError("Application not found")
        application = ProviderApplication.from_dict(doc)
        if application.status != ProviderApplicationStatus.PENDING.value:
            raise BadRequestError(f'Cannot {action} application with status "{application.status}"')
        return application

    def _review(self, application_id: str, updates: Dict[str, Any]) -> ProviderApplication:
        now = DateTimeUtils.now()
        updates.update({'reviewed_at': now, 'updated_at': now})
        doc = self.mongo.provider_applications.find_one_and_update(
            {'_id': to_object_id(application_id), 'status': ProviderApplicationStatus.PENDING.value},
            {'$set': updates},
            return_document=ReturnDocument.AFTER
        )
        if doc is None:
            raise BadRequestError("Application status has changed. Please refresh and try again.")
        return ProviderApplication.from_dict(doc)

    def apply(self, user_id: str, data: Dict[str, Any]) -> ProviderApplication:
        existing = self.mongo.provider_applications.find_one({
            'user_id': to_object_id(user_id),
            'status': {'$in': [ProviderApplicationStatus.PENDING.value, ProviderApplicationStatus.APPROVED.value]}
        })
        if existing:
            if existing['status'] == ProviderApplicationStatus.APPROVED.value:
                raise BadRequestError("You are already an approved service provider")
            raise BadRequestError("You already have a pending application")

        application = ProviderApplication(user_id=user_id, **data)
        result = self.mongo.provider_applications.insert_one(application.to_document())
        application.id = str(result.inserted_id)
        logging.info(f"Provider application {application.id} submitted by user {user_id}")
        return application

    def get_my_application(self, user_id: str) -> ProviderApplication:
        """가장 최근 신청서를 반환합니다."""
        docs = list(self.mongo.provider_applications
                    .find({'user_id': to_object_id(user_id)})
                    .sort('created_at', DESCENDING).limit(1))
        if not docs:
            raise NotFoundError("No application found")
        return ProviderApplication.from_dict(docs[0])

    def list_applications(self, args: Dict[str, Any]) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
        """[SUPER_ADMIN] 신청 목록. 신청자와 검토자의 이름/이메일을 함께 반환합니다."""
        page, limit, skip = get_pagination(args, default_limit=10)
        query: Dict[str, Any] = {}
        if args.get('status'):
            query['status'] = args['status'].lower()
        if args.get('serviceType'):
            query['service_type'] = args['serviceType'].lower()

        total = self.mongo.provider_applications.count_documents(query)
        cursor = self.mongo.provider_applications.find(query).sort('created_at', DESCENDING).skip(skip).limit(limit)
        applications = [ProviderApplication.from_dict(doc) for doc in cursor]

        user_ids = {a.user_id for a in applications} | {a.reviewed_by for a in applications if a.reviewed_by}
        oids = [to_object_id(uid) for uid in user_ids]
        users = {
            str(doc['_id']): {"_id": str(doc['_id']), "name": doc.get('name'), "email": doc.get('email'),
                              "phoneNumber": doc.get('phone_number')}
            for doc in self.mongo.users.find({'_id': {'$in': oids}})
        }

        results = []
        for application in applications:
            data = ProviderApplicationResponseSchema().dump(application)
            data['userId'] = users.get(application.user_id, {"_id": application.user_id})
            if application.reviewed_by:
                data['reviewedBy'] = users.get(application.reviewed_by, {"_id": application.reviewed_by})
            results.append(data)
        return results, pagination_meta(total, page, limit)

    def approve(self, application_id: str, reviewer_id: str, review_notes: Optional[str] = None) -> ProviderApplication:
        application = self._find_pending(application_id, "approve")
        approved = self._review(application_id, {
            'status': ProviderApplicationStatus.APPROVED.value,
            'reviewed_by': to_object_id(reviewer_id),
            'review_notes': review_notes
        })
        self.mongo.users.update_one(
            {'_id': to_object_id(application.user_id)},
            {'$set': {
                'roles': UserRole.ADMIN.value,
                'service_type': application.service_type,
                'updated_at': DateTimeUtils.now()
            }}
        )
        logging.info(f"Provider application {application_id} approved by {reviewer_id}; user {application.user_id} promoted to ADMIN")
        return approved

    def reject(self, application_id: str, reviewer_id: str, rejection_reason: Optional[str]) -> ProviderApplication:
        if not rejection_reason:
            raise BadRequestError("Rejection reason is required")
        self._find_pending(application_id, "reject")
        rejected = self._review(application_id, {
            'status': ProviderApplicationStatus.REJECTED.value,
            'reviewed_by': to_object_id(reviewer_id),
            'rejection_reason': rejection_reason
        })
        logging.info(f"Provider application {application_id} rejected by {reviewer_id}")
        return rejected
