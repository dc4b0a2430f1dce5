"""
Tests para el desbloqueo de operaciones destructivas

Cubre:
- Emisión del token de capacidad con la clave correcta
- Rechazo de claves incorrectas
- Validación de tipo, alcance y expiración del token
"""

import pytest
import jwt
from datetime import datetime, timedelta, timezone
from fastapi import HTTPException
from fastapi.testclient import TestClient

from app.main import app
from app.core.config import settings
from app.modules.auth.utils import (
    create_capability_token, verify_capability_token, verify_admin_password, hash_password, verify_password
)


client = TestClient(app)


class TestCapabilityToken:
    """Tests para los tokens de capacidad"""

    def test_round_trip(self):
        payload = verify_capability_token(create_capability_token())
        assert payload["type"] == "capability"
        assert payload["scope"] == "destructive"

    def test_expired_token(self):
        token = create_capability_token(expires_delta=timedelta(seconds=-1))
        with pytest.raises(HTTPException) as exc:
            verify_capability_token(token)
        assert exc.value.status_code == 403

    def test_wrong_type(self):
        token = jwt.encode(
            {"sub": "operator", "type": "access", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            settings.APP_SECRET_STRING, algorithm=settings.ALGORITHM
        )
        with pytest.raises(HTTPException) as exc:
            verify_capability_token(token)
        assert exc.value.status_code == 403

    def test_wrong_signature(self):
        token = jwt.encode(
            {"type": "capability", "scope": "destructive", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            "other-secret", algorithm="HS256"
        )
        with pytest.raises(HTTPException):
            verify_capability_token(token)


class TestAdminPassword:
    """Tests para la clave del operador"""

    def test_verify_admin_password(self):
        assert verify_admin_password("1234") is True
        assert verify_admin_password("4321") is False
        assert verify_admin_password("") is False
        assert verify_admin_password(None) is False

    def test_hash_password(self):
        hashed = hash_password("secreto")
        assert hashed != "secreto"
        assert verify_password("secreto", hashed)


class TestUnlockEndpoint:
    """Tests para POST /auth/unlock"""

    def test_unlock(self):
        response = client.post("/auth/unlock", json={"password": "1234"})
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == settings.CAPABILITY_TOKEN_EXPIRE_MINUTES * 60
        assert verify_capability_token(data["capability_token"])["scope"] == "destructive"

    def test_wrong_password(self):
        response = client.post("/auth/unlock", json={"password": "nope"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Contraseña incorrecta"

    def test_missing_password(self):
        response = client.post("/auth/unlock", json={})
        assert response.status_code == 422
