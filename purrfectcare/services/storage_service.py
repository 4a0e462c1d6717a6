# purrfectcare/services/storage_service.py
import os
import uuid
import logging
from datetime import timedelta
from flask import Flask
import firebase_admin
from firebase_admin import credentials, storage

class StorageService:
    """
    Firebase Storage 관련 로직을 담당하는 범용 서비스 클래스입니다.
    반려동물 사진, 상품 이미지, 입양 공고 사진, 프로필 이미지 업로드용 Pre-signed URL을 발급합니다.
    """

    # 'upload_type'별 저장 폴더
    PATH_MAP = {
        "pet_photo": "pets/{user_id}",
        "product_image": "products/{user_id}",
        "adoption_photo": "adoption_listings/{user_id}",
        "profile_image": "user_profiles/{user_id}",
    }

    def __init__(self):
        """실제 버킷 객체는 init_app 메서드를 통해 주입됩니다."""
        self.bucket = None

    @property
    def enabled(self) -> bool:
        return self.bucket is not None

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 Storage 버킷을 설정합니다.
        자격 증명이나 버킷 설정이 없으면 업로드 기능 없이 동작합니다.

        :param app: Flask 애플리케이션 객체
        """
        cred_path = app.config.get('FIREBASE_CREDENTIALS_PATH')
        bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
        if not cred_path or not bucket_name:
            logging.warning("StorageService: Firebase 설정이 없어 이미지 업로드가 비활성화되었습니다.")
            return

        if not firebase_admin._apps:
            if not os.path.exists(cred_path):
                raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
            firebase_admin.initialize_app(credentials.Certificate(cred_path), {
                'storageBucket': bucket_name
            })

        self.bucket = storage.bucket(bucket_name)
        logging.info("StorageService: Firebase Storage 서비스가 성공적으로 초기화되었습니다.")

    def generate_upload_url(self, user_id: str, upload_type: str, filename: str, content_type: str) -> dict:
        """
        업로드 목적에 맞는 경로로 15분간 유효한 PUT 전용 URL을 생성합니다.

        :param user_id: 현재 로그인된 사용자의 ID
        :param upload_type: 업로드 목적 (PATH_MAP의 키)
        :param filename: 원본 파일명 (확장자 파악에 사용)
        :param content_type: 업로드할 파일의 MIME 타입
        :return: {upload_url, file_path}
        """
        if not self.bucket:
            raise RuntimeError("StorageService가 초기화되지 않았습니다.")

        folder_template = self.PATH_MAP.get(upload_type)
        if not folder_template:
            raise ValueError(f"'{upload_type}' is not a valid upload type.")

        extension = filename.rsplit('.', 1)[-1] if '.' in filename else ''
        unique_filename = f"{uuid.uuid4()}.{extension}" if extension else str(uuid.uuid4())
        destination_blob_name = f"{folder_template.format(user_id=user_id)}/{unique_filename}"

        blob = self.bucket.blob(destination_blob_name)
        upload_url = blob.generate_signed_url(
            version="v4",
            expiration=timedelta(minutes=15),
            method="PUT",
            content_type=content_type
        )

        return {
            "upload_url": upload_url,
            "file_path": destination_blob_name
        }

    def make_public_and_get_url(self, file_path: str) -> str:
        """
        업로드가 끝난 파일을 공개로 전환하고 URL을 반환합니다.

        :param file_path: generate_upload_url에서 받은 파일 경로
        """
        if not self.bucket:
            raise RuntimeError("StorageService가 초기화되지 않았습니다.")

        blob = self.bucket.blob(file_path)
        if not blob.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        blob.make_public()
        return blob.public_url
