# purrfectcare/api/auth/services.py
import uuid
import logging
import secrets
from typing import Dict, Optional, Tuple

from bson import ObjectId
from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from purrfectcare.core.errors import BadRequestError, NotFoundError
from purrfectcare.core.security import hash_password, verify_password
from purrfectcare.models.user import User
from purrfectcare.models.verification import VerificationRecord, VERIFICATION_TTL_HOURS
from purrfectcare.services.email_service import EmailService
from purrfectcare.services.mongo_service import MongoService
from purrfectcare.utils.datetime_utils import DateTimeUtils
from purrfectcare.utils.query_utils import to_object_id

# 인증 요청 종류별 오류 메시지
_VERIFICATION_MESSAGES = {
    "expired": "Invalid or expired verification request.",
    "used": "This verification request has already been used.",
    "token": "Invalid or expired verification link.",
    "otp": "Invalid or expired verification code.",
}
_RESET_MESSAGES = {
    "expired": "Invalid or expired reset request.",
    "used": "This reset request has already been used.",
    "token": "Invalid or expired link.",
    "otp": "Invalid or expired reset code.",
}

def normalize_email(email: str) -> str:
    return (email or '').strip().lower()

class AuthService:
    """회원가입, 로그인, 이메일 인증, 비밀번호 재설정을 담당하는 서비스."""
    def __init__(self, mongo: MongoService, email_service: EmailService):
        self.mongo = mongo
        self.email_service = email_service
        logging.info("AuthService initialized with dependencies.")

    # --- 회원가입 / 로그인 ---
    def register_user(self, name: str, email: str, password: str) -> User:
        """
        새 사용자를 등록합니다.
        이메일 중복은 먼저 조회로 확인하고, 동시에 들어온 요청은 users.email 고유 인덱스가 막습니다.
        """
        email = normalize_email(email)
        if self.mongo.users.find_one({'email': email}):
            raise BadRequestError("User already exists", "USER_EXISTS")

        user = User(name=name.strip(), email=email, password=hash_password(password))
        try:
            result = self.mongo.users.insert_one(user.to_document())
        except DuplicateKeyError:
            logging.info(f"중복 회원가입 요청 차단: {email}")
            raise BadRequestError("User already exists", "USER_EXISTS")
        user.id = str(result.inserted_id)
        logging.info(f"New user registered: {user.id}")

        self._send_verification_safely(user)
        return user

    def login(self, email: str, password: str) -> User:
        doc = self.mongo.users.find_one({'email': normalize_email(email)})
        if not doc:
            raise BadRequestError("User not found", "USER_NOT_FOUND")
        if not verify_password(password, doc.get('password')):
            raise BadRequestError("Email or password is incorrect", "INVALID_CREDENTIALS")

        now = DateTimeUtils.now()
        self.mongo.users.update_one({'_id': doc['_id']}, {'$set': {'last_login': now}})
        doc['last_login'] = now
        return User.from_dict(doc)

    # --- 비밀번호 재설정 ---
    def forgot_password(self, email: str) -> Dict[str, str]:
        """존재하지 않는 이메일이어도 같은 응답을 돌려주어 가입 여부를 노출하지 않습니다."""
        doc = self.mongo.users.find_one({'email': normalize_email(email)})
        if doc:
            user = User.from_dict(doc)
            token, otp = self._create_record(self.mongo.password_resets, user.id)
            self.email_service.send_password_reset_email(user.email, user.name, user.id, token, otp)
            logging.info(f"Password reset requested for user {user.id}")
        return {"message": "Reset password link send successfully"}

    def verify_reset_otp(self, email: str, otp: str) -> Dict[str, str]:
        user = self._get_user_by_email(email)
        record = self._get_active_record(self.mongo.password_resets, user.id, _RESET_MESSAGES)
        if not verify_password(str(otp), record.otp_hash):
            raise BadRequestError(_RESET_MESSAGES["otp"])
        return {"userId": user.id, "token": record.token}

    def reset_password(self, new_password: str, user_id: Optional[str] = None, token: Optional[str] = None,
                       email: Optional[str] = None, otp: Optional[str] = None) -> Dict[str, str]:
        resolved_user_id = user_id or (self._get_user_by_email(email).id if email else None)
        if not resolved_user_id:
            raise BadRequestError("User ID or email is required.")

        record = self._get_active_record(self.mongo.password_resets, resolved_user_id, _RESET_MESSAGES)
        self._check_record_secret(record, token, otp, _RESET_MESSAGES)

        self.mongo.users.update_one(
            {'_id': ObjectId(resolved_user_id)},
            {'$set': {'password': hash_password(new_password), 'updated_at': DateTimeUtils.now()}}
        )
        self.mongo.password_resets.update_one({'_id': ObjectId(record.id)}, {'$set': {'is_used': True}})
        logging.info(f"Password reset completed for user {resolved_user_id}")
        return {"message": "Password reset successfully."}

    # --- 이메일 인증 ---
    def verify_account(self, user_id: Optional[str] = None, token: Optional[str] = None,
                       email: Optional[str] = None, otp: Optional[str] = None) -> Dict[str, str]:
        resolved_user_id = user_id or (self._get_user_by_email(email).id if email else None)
        if not resolved_user_id:
            raise BadRequestError("User ID or email is required.")

        record = self._get_active_record(self.mongo.account_verifications, resolved_user_id, _VERIFICATION_MESSAGES)
        self._check_record_secret(record, token, otp, _VERIFICATION_MESSAGES)

        doc = self.mongo.users.find_one({'_id': ObjectId(resolved_user_id)})
        if not doc:
            raise NotFoundError("User not found")
        if doc.get('is_verified'):
            raise BadRequestError("Account already verified")

        self.mongo.users.update_one(
            {'_id': doc['_id']},
            {'$set': {'is_verified': True, 'updated_at': DateTimeUtils.now()}}
        )
        self.mongo.account_verifications.update_one({'_id': ObjectId(record.id)}, {'$set': {'is_used': True}})
        logging.info(f"Account verified for user {resolved_user_id}")
        return {"message": "Account verified successfully."}

    def resend_verification(self, email: str) -> Dict[str, str]:
        user = self._get_user_by_email(email)
        if user.is_verified:
            raise BadRequestError("Account already verified")
        token, otp = self._create_record(self.mongo.account_verifications, user.id)
        self.email_service.send_verification_email(user.email, user.name, user.id, token, otp)
        return {"message": "Verification email sent."}

    # --- 내부 헬퍼 ---
    def _get_user_by_email(self, email: str) -> User:
        doc = self.mongo.users.find_one({'email': normalize_email(email)})
        if not doc:
            raise NotFoundError("User not found")
        return User.from_dict(doc)

    def _create_record(self, collection: Collection, user_id: str) -> Tuple[str, str]:
        """일회용 토큰과 6자리 OTP를 만들고 OTP는 해시로만 저장합니다."""
        token = str(uuid.uuid4())
        otp = f"{secrets.randbelow(1_000_000):06d}"
        record = VerificationRecord(
            user_id=user_id,
            token=token,
            otp_hash=hash_password(otp),
            expires_at=DateTimeUtils.add_hours(DateTimeUtils.now(), VERIFICATION_TTL_HOURS)
        )
        collection.insert_one(record.to_document())
        return token, otp

    def _get_active_record(self, collection: Collection, user_id: str, messages: Dict[str, str]) -> VerificationRecord:
        """가장 최근 요청을 가져옵니다. 만료되었거나 이미 사용된 요청은 거부합니다."""
        user_oid = to_object_id(user_id)
        if not user_oid:
            raise BadRequestError(messages["expired"])
        doc = next(collection.find({'user_id': user_oid}).sort('expires_at', DESCENDING).limit(1), None)
        if not doc:
            raise BadRequestError(messages["expired"])
        record = VerificationRecord.from_dict(doc)
        if record.is_expired():
            raise BadRequestError(messages["expired"])
        if record.is_used:
            raise BadRequestError(messages["used"])
        return record

    @staticmethod
    def _check_record_secret(record: VerificationRecord, token: Optional[str], otp: Optional[str], messages: Dict[str, str]):
        if token:
            if not secrets.compare_digest(record.token, str(token)):
                raise BadRequestError(messages["token"])
        elif otp:
            if not verify_password(str(otp), record.otp_hash):
                raise BadRequestError(messages["otp"])
        else:
            raise BadRequestError("Token or code is required.")

    def _send_verification_safely(self, user: User):
        """회원가입 직후 인증 메일 발송. 실패해도 가입 자체는 성공으로 처리합니다."""
        try:
            token, otp = self._create_record(self.mongo.account_verifications, user.id)
            self.email_service.send_verification_email(user.email, user.name, user.id, token, otp)
        except Exception as e:
            logging.error(f"인증 메일 준비/발송 실패 (user_id: {user.id}): {e}", exc_info=True)
