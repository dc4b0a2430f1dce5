"""
MinIO storage service for invoice documents
"""
from minio import Minio
from minio.error import S3Error
from fastapi import HTTPException, status
from functools import lru_cache
from datetime import timedelta
from io import BytesIO
from uuid import uuid4
import logging

from app.core.config import settings
from app.modules.files.schemas import StoredDocument

logger = logging.getLogger(__name__)

# Región fija: evita que el cliente consulte la ubicación del bucket al firmar
MINIO_REGION = "us-east-1"


class StorageService:
    """Service for handling MinIO operations with presigned URLs"""

    def __init__(self):
        self.client = Minio(
            settings.minio_endpoint,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_USE_SSL,
            region=MINIO_REGION
        )
        # Las URLs firmadas se arman con el hostname público
        self.signing_client = Minio(
            settings.minio_public_endpoint,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_USE_SSL,
            region=MINIO_REGION
        )
        self.bucket_name = settings.MINIO_BUCKET_NAME
        self._bucket_ready = False

    def _ensure_bucket_exists(self):
        """Ensure the bucket exists, create if it doesn't"""
        if self._bucket_ready:
            return
        if not self.client.bucket_exists(self.bucket_name):
            self.client.make_bucket(self.bucket_name)
            logger.info(f"Created MinIO bucket: {self.bucket_name}")
        self._bucket_ready = True

    @staticmethod
    def generate_document_key() -> str:
        """Structure: invoices/<hex>.pdf"""
        return f"invoices/{uuid4().hex}.pdf"

    def upload_document(self, data: bytes, content_type: str = "application/pdf") -> StoredDocument:
        """Upload an invoice PDF and return its object key"""
        key = self.generate_document_key()
        try:
            self._ensure_bucket_exists()
            self.client.put_object(
                bucket_name=self.bucket_name,
                object_name=key,
                data=BytesIO(data),
                length=len(data),
                content_type=content_type
            )
        except S3Error as e:
            logger.error(f"MinIO upload error for {key}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="No se pudo subir el documento de la factura"
            )
        logger.info(f"Uploaded invoice document {key} ({len(data)} bytes)")
        return StoredDocument(key=key, size=len(data), content_type=content_type)

    def get_presigned_download_url(self, key: str, expires: timedelta = None) -> str:
        """Generate presigned URL for document download"""
        if expires is None:
            expires = timedelta(minutes=settings.SIGNED_URL_EXPIRE_MINUTES)
        try:
            return self.signing_client.presigned_get_object(
                bucket_name=self.bucket_name,
                object_name=key,
                expires=expires
            )
        except S3Error as e:
            logger.error(f"MinIO download URL generation error: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="No se pudo generar el enlace del documento"
            )

    def delete_document(self, key: str) -> bool:
        """Delete document from MinIO"""
        try:
            self.client.remove_object(self.bucket_name, key)
            return True
        except S3Error as e:
            logger.error(f"MinIO file deletion error: {e}")
            return False


@lru_cache()
def get_storage_service() -> StorageService:
    """Dependencia: un único cliente de storage por proceso"""
    return StorageService()
