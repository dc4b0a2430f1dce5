"""
Configuración global de pytest

Base de datos SQLite en memoria y storage falso en memoria. Las variables de
entorno se fijan antes de importar la app para que el engine se cree con SQLite.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["ADMIN_PASSWORD"] = "1234"
os.environ.pop("ADMIN_PASSWORD_HASH", None)

import pytest
from fastapi import HTTPException
from uuid import uuid4

from app.main import app
from app.database.database import Base, engine, SessionLocal
from app.modules.auth.utils import create_capability_token
from app.modules.files.schemas import StoredDocument
from app.modules.files.service import get_storage_service
from app.modules.reports.services.snapshot import get_snapshot_cache


PDF_BYTES = b"%PDF-1.4\n1 0 obj <<>> endobj\ntrailer <<>>\n%%EOF\n"


class FakeStorage:
    """Storage en memoria con la misma interfaz que StorageService"""

    def __init__(self):
        self.objects = {}
        self.fail_uploads = False
        self.fail_deletes = False

    def upload_document(self, data: bytes, content_type: str = "application/pdf") -> StoredDocument:
        if self.fail_uploads:
            raise HTTPException(status_code=500, detail="No se pudo subir el documento de la factura")
        key = f"invoices/{uuid4().hex}.pdf"
        self.objects[key] = data
        return StoredDocument(key=key, size=len(data), content_type=content_type)

    def get_presigned_download_url(self, key: str, expires=None) -> str:
        return f"http://storage.test/invoices/{key}?X-Amz-Expires=600"

    def delete_document(self, key: str) -> bool:
        if self.fail_deletes:
            return False
        return self.objects.pop(key, None) is not None


# ===== FIXTURES =====

@pytest.fixture(autouse=True)
def setup_database():
    """Tablas limpias y snapshot invalidado en cada test"""
    Base.metadata.create_all(bind=engine)
    get_snapshot_cache().invalidate()
    yield
    get_snapshot_cache().invalidate()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def storage():
    fake = FakeStorage()
    app.dependency_overrides[get_storage_service] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_storage_service, None)


@pytest.fixture
def db_session(setup_database):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def capability_headers():
    return {"Authorization": f"Bearer {create_capability_token()}"}


@pytest.fixture
def pdf_bytes():
    return PDF_BYTES
