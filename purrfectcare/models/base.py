# purrfectcare/models/base.py
from dataclasses import asdict, fields
from typing import Any, ClassVar, Dict, Tuple

from bson import ObjectId

from purrfectcare.utils.datetime_utils import DateTimeUtils

class MongoDocument:
    """
    MongoDB 문서와 데이터클래스 사이의 상호 변환을 담당하는 믹스인.
    - '_id'는 문자열 'id' 필드로 변환됩니다.
    - OBJECT_ID_FIELDS에 선언된 참조 필드는 DB에서는 ObjectId, 모델에서는 문자열입니다.
    """
    OBJECT_ID_FIELDS: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        processed = DateTimeUtils.from_mongo(dict(data))
        if '_id' in processed:
            processed['id'] = str(processed.pop('_id'))
        for name in cls.OBJECT_ID_FIELDS:
            if isinstance(processed.get(name), ObjectId):
                processed[name] = str(processed[name])
        # 스키마에 없는 레거시 필드는 무시합니다.
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in processed.items() if k in known})

    def to_document(self) -> Dict[str, Any]:
        doc = asdict(self)
        doc.pop('id', None)
        for name in self.OBJECT_ID_FIELDS:
            if doc.get(name):
                doc[name] = ObjectId(doc[name])
        return DateTimeUtils.for_mongo(doc)
