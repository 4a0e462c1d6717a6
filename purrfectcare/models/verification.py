# purrfectcare/models/verification.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from purrfectcare.models.base import MongoDocument
from purrfectcare.utils.datetime_utils import DateTimeUtils

# 인증/재설정 요청의 유효 시간
VERIFICATION_TTL_HOURS = 1

@dataclass
class VerificationRecord(MongoDocument):
    """
    이메일 인증('account_verifications')과 비밀번호 재설정('password_resets')에 공통으로 쓰는 일회용 요청.
    링크용 token(uuid4)과 6자리 OTP의 bcrypt 해시를 함께 보관합니다.
    """
    OBJECT_ID_FIELDS = ('user_id',)

    user_id: str
    token: str
    otp_hash: str
    expires_at: datetime
    is_used: bool = False
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    id: Optional[str] = None

    def is_expired(self) -> bool:
        return self.expires_at <= DateTimeUtils.now()
