# purrfectcare/core/errors.py
from typing import Optional
from flask import jsonify

class ServiceError(Exception):
    """서비스 계층에서 발생시키는 도메인 예외의 기반 클래스. 라우트에서 HTTP 응답으로 변환됩니다."""
    status_code = 400
    error_code = "BAD_REQUEST"

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code

class BadRequestError(ServiceError):
    status_code = 400
    error_code = "BAD_REQUEST"

class ForbiddenError(ServiceError):
    status_code = 403
    error_code = "FORBIDDEN"

class NotFoundError(ServiceError):
    status_code = 404
    error_code = "NOT_FOUND"

class ServiceUnavailableError(ServiceError):
    status_code = 503
    error_code = "SERVICE_UNAVAILABLE"

class PaymentGatewayError(ServiceError):
    """Khalti 호출 실패."""
    status_code = 502
    error_code = "PAYMENT_GATEWAY_ERROR"


def error_response(err: ServiceError, key: str = "error"):
    """ServiceError를 JSON 응답으로 변환합니다. 인증 API는 key='message'를 사용합니다."""
    return jsonify({key: err.message, "error_code": err.error_code}), err.status_code

def validation_error_response(err):
    """marshmallow ValidationError를 400 응답으로 변환합니다. 첫 번째 메시지들을 'error'에 모아 둡니다."""
    return jsonify({
        "error_code": "VALIDATION_ERROR",
        "error": ", ".join(_flatten_messages(err.messages)),
        "details": err.messages
    }), 400

def _flatten_messages(messages) -> list:
    if isinstance(messages, str):
        return [messages]
    if isinstance(messages, dict):
        flat = []
        for value in messages.values():
            flat.extend(_flatten_messages(value))
        return flat
    if isinstance(messages, (list, tuple)):
        flat = []
        for value in messages:
            flat.extend(_flatten_messages(value))
        return flat
    return [str(messages)]
