# purrfectcare/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from flask import Flask, jsonify, current_app
from marshmallow import ValidationError
from flask_jwt_extended import JWTManager
from werkzeug.exceptions import HTTPException

# - 설정
from purrfectcare.core.config import config_by_name
from purrfectcare.core.errors import validation_error_response

# - API 블루프린트
from purrfectcare.api.auth.routes import auth_bp
from purrfectcare.api.users.routes import users_bp
from purrfectcare.api.pets.routes import pets_bp
from purrfectcare.api.products.routes import products_bp
from purrfectcare.api.cart.routes import cart_bp
from purrfectcare.api.orders.routes import orders_bp
from purrfectcare.api.adoption.routes import listings_bp, applications_bp
from purrfectcare.api.admin.routes import admin_bp
from purrfectcare.api.uploads.routes import uploads_bp

# - 서비스 모듈
from purrfectcare.services.mongo_service import MongoService
from purrfectcare.services.email_service import EmailService
from purrfectcare.services.storage_service import StorageService
from purrfectcare.services.khalti_service import KhaltiService
from purrfectcare.api.auth.services import AuthService
from purrfectcare.api.users.services import UserService
from purrfectcare.api.pets.services import PetService
from purrfectcare.api.products.services import ProductService
from purrfectcare.api.cart.services import CartService
from purrfectcare.api.orders.services import OrderService
from purrfectcare.api.adoption.services import AdoptionListingService, AdoptionApplicationService
from purrfectcare.api.admin.services import ProviderApplicationService

AUTH_REQUIRED_MESSAGE = "User not authenticated. Please login first."
INVALID_TOKEN_MESSAGE = "Invalid or expired token. Please login again."

def create_app(config_name=None, mongo_client=None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' | 'testing' | 'production' (없으면 FLASK_ENV)
    :param mongo_client: 외부에서 주입할 MongoClient (테스트에서는 mongomock)
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False
    # '/api/pets'와 '/api/pets/' 모두 허용합니다. 블루프린트 등록 전에 설정해야 합니다.
    app.url_map.strict_slashes = False

    if not app.config.get('JWT_SECRET_KEY'):
        raise ValueError("JWT_SECRET_KEY 설정이 .env 또는 설정 파일에 필요합니다.")

    # =====================================================================================
    # 4. 확장 기능 초기화 (JWT)
    # =====================================================================================
    jwt = JWTManager(app)

    @jwt.unauthorized_loader
    def handle_missing_token(reason):
        return jsonify({"error": AUTH_REQUIRED_MESSAGE}), 401

    @jwt.invalid_token_loader
    def handle_invalid_token(reason):
        return jsonify({"error": INVALID_TOKEN_MESSAGE}), 401

    @jwt.expired_token_loader
    def handle_expired_token(jwt_header, jwt_payload):
        return jsonify({"error": INVALID_TOKEN_MESSAGE}), 401

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    # 5-1. 다른 서비스의 기반이 되는 공용 서비스 먼저 생성
    try:
        mongo_instance = MongoService()
        mongo_instance.init_app(app, client=mongo_client)
        app.services['mongo'] = mongo_instance
    except Exception as e:
        logging.error(f"Failed to initialize MongoDB service: {e}")
        raise

    email_instance = EmailService()
    email_instance.init_app(app)
    app.services['email'] = email_instance

    storage_instance = StorageService()
    storage_instance.init_app(app)
    app.services['storage'] = storage_instance

    khalti_instance = KhaltiService()
    khalti_instance.init_app(app)
    app.services['khalti'] = khalti_instance

    # 5-2. 다른 서비스를 주입받아야 하는 도메인 서비스 생성
    app.services['auth'] = AuthService(mongo=mongo_instance, email_service=email_instance)
    app.services['users'] = UserService(mongo=mongo_instance)
    app.services['pets'] = PetService(mongo=mongo_instance)
    app.services['products'] = ProductService(mongo=mongo_instance)
    app.services['cart'] = CartService(mongo=mongo_instance)
    app.services['orders'] = OrderService(mongo=mongo_instance, khalti=khalti_instance)
    app.services['adoption_listings'] = AdoptionListingService(mongo=mongo_instance)
    app.services['adoption_applications'] = AdoptionApplicationService(
        mongo=mongo_instance,
        listings=app.services['adoption_listings'],
        pets=app.services['pets']
    )
    app.services['provider_applications'] = ProviderApplicationService(mongo=mongo_instance)

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(pets_bp, url_prefix='/api/pets')
    app.register_blueprint(products_bp, url_prefix='/api/products')
    app.register_blueprint(cart_bp, url_prefix='/api/cart')
    app.register_blueprint(orders_bp, url_prefix='/api/orders')
    app.register_blueprint(listings_bp, url_prefix='/api/adoption/listings')
    app.register_blueprint(applications_bp, url_prefix='/api/adoption/applications')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(uploads_bp, url_prefix='/api/uploads')

    @app.route('/', methods=['GET'])
    def health_check():
        return jsonify({"name": current_app.config['NAME'], "version": current_app.config['VERSION']}), 200

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        return validation_error_response(err)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err):
        # 404, 405 등은 그대로 상태 코드를 유지합니다.
        return jsonify({"error_code": err.name.upper().replace(' ', '_'), "error": err.description}), err.code

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "error": "An unexpected error occurred on the server."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
