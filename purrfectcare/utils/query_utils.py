# purrfectcare/utils/query_utils.py
"""목록 API에서 공통으로 사용하는 ObjectId 변환, 페이지네이션, 정렬, 검색 필터 헬퍼."""
import math
import re
from typing import Any, Dict, Optional, Tuple

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING

MAX_PAGE_LIMIT = 100

def to_object_id(value: Any) -> Optional[ObjectId]:
    """문자열을 ObjectId로 변환합니다. 형식이 잘못되었으면 None."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None

def parse_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default

def parse_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None

def get_pagination(args: Dict[str, Any], default_limit: int = 10) -> Tuple[int, int, int]:
    """쿼리 스트링에서 (page, limit, skip)을 계산합니다. 잘못된 값은 기본값으로 대체됩니다."""
    page = max(1, parse_int(args.get('page'), 1))
    limit = parse_int(args.get('limit'), default_limit)
    if limit < 1:
        limit = default_limit
    limit = min(limit, MAX_PAGE_LIMIT)
    return page, limit, (page - 1) * limit

def pagination_meta(total: int, page: int, limit: int) -> Dict[str, int]:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if limit else 0
    }

def sort_spec(field: str, order: Optional[str]) -> list:
    """'asc' 이외의 값은 모두 내림차순으로 처리합니다."""
    direction = ASCENDING if (order or '').lower() == 'asc' else DESCENDING
    return [(field, direction)]

def contains_regex(text: str) -> Dict[str, Any]:
    """대소문자를 구분하지 않는 부분 일치 검색 조건. 사용자 입력은 이스케이프합니다."""
    return {"$regex": re.escape(text.strip()), "$options": "i"}
