# purrfectcare/core/config.py

import os # 환경 변수를 읽기 위해 사용합니다.
from datetime import timedelta

class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # 서비스 이름/버전. GET / 헬스체크 응답에 그대로 노출됩니다.
    NAME = os.getenv('NAME', 'PurrfectCare')
    VERSION = os.getenv('VERSION', '1.0.0')
    # 이메일 본문에 들어가는 프론트엔드 링크의 기준 주소입니다.
    APP_URL = os.getenv('APP_URL', 'http://localhost:3000')

    MONGODB_URL = os.getenv('MONGODB_URL', 'mongodb://localhost:27017')
    MONGODB_DB_NAME = os.getenv('MONGODB_DB_NAME', 'purrfectcare')

    # JWT 서명 키. 세션 토큰(authToken)은 헤더와 쿠키 양쪽에서 받습니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or os.getenv('JWT_SECRET')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=7)
    JWT_TOKEN_LOCATION = ['headers', 'cookies']
    JWT_ACCESS_COOKIE_NAME = 'authToken'
    JWT_COOKIE_CSRF_PROTECT = False
    # False면 쿠키 max-age가 토큰 만료 시간(7일)과 같아집니다.
    JWT_SESSION_COOKIE = False
    JWT_COOKIE_SECURE = False
    JWT_COOKIE_SAMESITE = 'Lax'

    # SMTP_HOST가 비어 있으면 메일 발송은 로그만 남기고 건너뜁니다.
    SMTP_HOST = os.getenv('SMTP_HOST')
    SMTP_PORT = int(os.getenv('SMTP_PORT', 587))
    SMTP_USER = os.getenv('SMTP_USER')
    SMTP_PASSWORD = os.getenv('SMTP_PASSWORD') or os.getenv('EMAIL_API_KEY')
    EMAIL_FROM = os.getenv('EMAIL_FROM', 'no-reply@purrfectcare.app')

    # 이미지 업로드용 Firebase Storage. 둘 중 하나라도 없으면 업로드 API가 비활성화됩니다.
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')

    KHALTI_API_KEY = os.getenv('KHALTI_API_KEY')
    KHALTI_API_URL = os.getenv('KHALTI_API_URL', 'https://dev.khalti.com/api/v2')
    KHALTI_RETURN_URL = os.getenv('KHALTI_RETURN_URL', 'http://localhost:3000/payment/khalti/callback')

class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True

class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다."""
    TESTING = True
    DEBUG = False
    MONGODB_DB_NAME = 'purrfectcare_test'
    JWT_SECRET_KEY = 'test-secret-key-with-enough-length-for-hs256'
    # 테스트에서는 외부 연동을 모두 끕니다.
    SMTP_HOST = None
    FIREBASE_CREDENTIALS_PATH = None
    FIREBASE_STORAGE_BUCKET = None
    KHALTI_API_KEY = 'test-khalti-key'

class ProductionConfig(Config):
    """운영 환경 설정. 쿠키는 HTTPS에서만 전송됩니다."""
    DEBUG = False
    JWT_COOKIE_SECURE = True

# FLASK_ENV 값에 따라 create_app에서 설정 클래스를 선택합니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
