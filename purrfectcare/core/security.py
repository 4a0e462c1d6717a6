# purrfectcare/core/security.py
import logging
from functools import wraps
from typing import Any, Dict

import bcrypt
from bson import ObjectId
from flask import jsonify, g, current_app
from flask_jwt_extended import create_access_token, get_jwt_identity, verify_jwt_in_request

# bcrypt cost factor (2^10 라운드)
BCRYPT_ROUNDS = 10
# bcrypt는 72바이트까지만 사용합니다. 그 이상은 잘라서 해시합니다.
BCRYPT_MAX_BYTES = 72

def _encode_password(plain: str) -> bytes:
    return plain.encode('utf-8')[:BCRYPT_MAX_BYTES]

def hash_password(plain: str) -> str:
    """평문 비밀번호를 bcrypt 해시 문자열로 변환합니다."""
    hashed = bcrypt.hashpw(_encode_password(plain), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode('utf-8')

def verify_password(plain: str, hashed: str) -> bool:
    """평문과 저장된 해시가 일치하는지 확인합니다. 해시 형식이 잘못되었으면 False."""
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(_encode_password(plain), hashed.encode('utf-8'))
    except ValueError:
        logging.warning("저장된 비밀번호 해시 형식이 올바르지 않습니다.")
        return False

def issue_auth_token(user: Dict[str, Any]) -> str:
    """
    세션 토큰(authToken)을 발급합니다.
    identity는 사용자 ID 문자열이며, 만료 시간은 JWT_ACCESS_TOKEN_EXPIRES(7일)를 따릅니다.
    """
    return create_access_token(
        identity=str(user['_id']),
        additional_claims={"email": user.get('email'), "roles": user.get('roles')}
    )

def load_current_user() -> Dict[str, Any]:
    """JWT identity로 사용자 문서를 조회해 g.current_user에 보관합니다."""
    identity = get_jwt_identity()
    user = None
    if identity and ObjectId.is_valid(identity):
        user = current_app.services['mongo'].users.find_one({'_id': ObjectId(identity)})
    g.current_user = user
    return user


def verified_required(f):
    """
    이메일 인증을 마친 사용자만 허용하는 데코레이터.
    jwt_required() 보다 안쪽에 선언합니다.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        user = load_current_user()
        if not user:
            return jsonify({"error": "User not authenticated. Please login first."}), 401
        if not user.get('is_verified'):
            return jsonify({
                "error": "Please verify your email address to access this feature.",
                "code": "EMAIL_NOT_VERIFIED"
            }), 403
        return f(*args, **kwargs)

    return decorated_function

def roles_required(*roles: str):
    """지정한 역할 중 하나를 가진 사용자만 허용하는 데코레이터."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verify_jwt_in_request()
            user = load_current_user()
            if not user:
                return jsonify({"error": "User not authenticated. Please login first."}), 401
            if user.get('roles') not in roles:
                return jsonify({
                    "error": "Access denied. Insufficient permissions.",
                    "code": "FORBIDDEN"
                }), 403
            return f(*args, **kwargs)

        return decorated_function
    return decorator
