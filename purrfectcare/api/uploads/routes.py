# purrfectcare/api/uploads/routes.py

import logging
from flask import request, jsonify, Blueprint, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import Schema, fields, validate, ValidationError, EXCLUDE

from purrfectcare.core.errors import ServiceUnavailableError, error_response, validation_error_response
from purrfectcare.services.storage_service import StorageService

# 모든 API는 '/api/uploads' 접두사 URL을 갖습니다.
uploads_bp = Blueprint('uploads', __name__)

class UploadUrlSchema(Schema):
    """Pre-signed URL 발급 요청 스키마"""
    class Meta:
        unknown = EXCLUDE

    upload_type = fields.Str(
        data_key="uploadType",
        required=True,
        validate=validate.OneOf(list(StorageService.PATH_MAP), error="'{input}' is not a valid upload type."),
        error_messages={"required": "Upload type is required"}
    )
    filename = fields.Str(required=True, error_messages={"required": "Filename is required"})
    content_type = fields.Str(
        data_key="contentType",
        required=True,
        error_messages={"required": "Content type is required"}
    )

class FilePathSchema(Schema):
    """파일 경로 유효성 검사를 위한 스키마"""
    class Meta:
        unknown = EXCLUDE

    file_path = fields.Str(data_key="filePath", required=True, error_messages={"required": "File path is required"})

def _storage_unavailable():
    return error_response(ServiceUnavailableError("File storage is not configured on this server.", "STORAGE_UNAVAILABLE"))


@uploads_bp.route('/url', methods=['POST'])
@jwt_required()
def get_upload_url():
    """
    모든 이미지 업로드를 위한 범용 Pre-signed URL을 발급합니다.
    클라이언트는 이 URL로 파일을 직접 PUT한 뒤 /finalize를 호출해 공개 URL을 받습니다.
    """
    user_id = get_jwt_identity()
    storage_service = current_app.services['storage']
    if not storage_service.enabled:
        return _storage_unavailable()

    try:
        data = UploadUrlSchema().load(request.get_json(silent=True) or {})
    except ValidationError as err:
        logging.warning(f"URL 발급 요청 실패 (잘못된 파라미터): {err.messages}")
        return validation_error_response(err)

    try:
        url_info = storage_service.generate_upload_url(
            user_id, data['upload_type'], data['filename'], data['content_type']
        )
        return jsonify({"uploadUrl": url_info['upload_url'], "filePath": url_info['file_path']}), 200
    except Exception as e:
        logging.error(f"Pre-signed URL 생성 중 서버 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "URL_GENERATION_FAILED", "error": "Failed to generate upload URL."}), 500


@uploads_bp.route('/finalize', methods=['POST'])
@jwt_required()
def finalize_upload():
    """
    업로드된 파일을 공개로 전환하고 URL을 반환합니다.
    본인 폴더에 올린 파일만 처리할 수 있습니다.
    """
    user_id = get_jwt_identity()
    storage_service = current_app.services['storage']
    if not storage_service.enabled:
        return _storage_unavailable()

    try:
        data = FilePathSchema().load(request.get_json(silent=True) or {})
    except ValidationError as err:
        return validation_error_response(err)

    file_path = data['file_path']
    if f"/{user_id}/" not in f"/{file_path}":
        return jsonify({"error_code": "FORBIDDEN", "error": "You can only finalize your own uploads."}), 403

    try:
        public_url = storage_service.make_public_and_get_url(file_path)
        return jsonify({"publicUrl": public_url}), 200
    except FileNotFoundError as e:
        return jsonify({"error_code": "FILE_NOT_FOUND", "error": str(e)}), 404
    except Exception as e:
        logging.error(f"파일 공개 전환 중 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "error": "Failed to process the uploaded file."}), 500
