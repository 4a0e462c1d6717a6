# purrfectcare/utils/datetime_utils.py
"""
프로젝트 전체에서 일관된 시간/날짜 처리를 위한 중앙화된 유틸리티 모듈

이 모듈의 목적:
1. 모든 시간 값을 UTC timezone-aware datetime으로 통일
2. MongoDB(BSON) 호환성 보장 (BSON에는 date 타입이 없음)
3. 날짜 문자열 파싱 통일
4. 나이 계산 등 반려동물 도메인에서 쓰는 날짜 계산 제공
"""

import logging
from datetime import datetime, date, timezone, time
from typing import Union, Any, Optional
from dateutil import parser as dateutil_parser
from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

class DateTimeUtils:
    """시간/날짜 처리를 위한 중앙화된 유틸리티 클래스"""

    @staticmethod
    def now() -> datetime:
        """현재 시간을 UTC timezone-aware datetime으로 반환"""
        return datetime.now(timezone.utc)

    @staticmethod
    def today() -> date:
        """오늘 날짜를 반환"""
        return datetime.now(timezone.utc).date()

    @staticmethod
    def parse_date_string(date_string: str) -> date:
        """
        날짜 문자열을 date 객체로 파싱

        지원 포맷:
        - 2024-01-15
        - 2024/01/15
        - 01-15-2024
        - 2024-01-15T00:00:00.000Z (브라우저 Date.toISOString 결과)
        """
        try:
            if not date_string:
                raise ValueError("빈 문자열은 파싱할 수 없습니다")

            dt = dateutil_parser.parse(date_string)
            return dt.date()

        except Exception as e:
            logger.error(f"날짜 문자열 파싱 실패: {date_string} - {e}")
            raise ValueError(f"잘못된 날짜 형식입니다: {date_string}")

    @staticmethod
    def for_mongo(obj: Any) -> Any:
        """
        MongoDB 저장을 위해 객체의 날짜/시간 필드를 변환

        변환 규칙:
        - date -> datetime (00:00:00 UTC)
        - timezone-naive datetime -> timezone-aware datetime (UTC)
        - dict/list 내부 재귀적 변환
        """
        if isinstance(obj, datetime):
            if obj.tzinfo is None:
                return obj.replace(tzinfo=timezone.utc)
            return obj.astimezone(timezone.utc)

        elif isinstance(obj, date):
            return datetime.combine(obj, time.min).replace(tzinfo=timezone.utc)

        elif isinstance(obj, dict):
            return {k: DateTimeUtils.for_mongo(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [DateTimeUtils.for_mongo(item) for item in obj]

        return obj

    @staticmethod
    def from_mongo(obj: Any) -> Any:
        """
        MongoDB에서 읽은 데이터의 datetime 필드를 UTC aware로 정규화

        pymongo는 tz_aware 옵션이 없으면 naive datetime(UTC 기준)을 돌려줍니다.
        """
        if isinstance(obj, datetime):
            if obj.tzinfo is None:
                return obj.replace(tzinfo=timezone.utc)
            return obj.astimezone(timezone.utc)

        elif isinstance(obj, dict):
            return {k: DateTimeUtils.from_mongo(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [DateTimeUtils.from_mongo(item) for item in obj]

        return obj

    @staticmethod
    def calculate_age_years(birthdate: Union[date, datetime, None]) -> Optional[int]:
        """생년월일로부터 만 나이(년)를 계산. 생일이 아직 지나지 않았으면 1을 뺍니다."""
        if birthdate is None:
            return None
        if isinstance(birthdate, datetime):
            birthdate = birthdate.date()
        return max(0, relativedelta(DateTimeUtils.today(), birthdate).years)

    @staticmethod
    def estimate_birthdate_from_months(months: int) -> datetime:
        """개월 수로부터 생년월일을 추정합니다. (해당 월 1일, UTC 자정)"""
        first_of_month = DateTimeUtils.today().replace(day=1)
        estimated = first_of_month - relativedelta(months=months)
        return datetime.combine(estimated, time.min).replace(tzinfo=timezone.utc)

    @staticmethod
    def add_hours(dt: datetime, hours: int) -> datetime:
        return dt + relativedelta(hours=hours)

    @staticmethod
    def validate_date_field(value: Any, field_name: str = "date") -> date:
        """
        API 요청에서 받은 date 값을 검증하고 변환

        Raises:
            ValueError: 잘못된 형식이거나 파싱할 수 없는 경우
        """
        if value is None:
            raise ValueError(f"{field_name}은 필수 필드입니다")

        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            return DateTimeUtils.parse_date_string(value)

        raise ValueError(f"{field_name}은 문자열 또는 date/datetime 객체여야 합니다")
