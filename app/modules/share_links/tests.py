"""
Tests para el control de acceso del visor

Cubre:
- Acceso libre sin token
- Tokens válidos, inactivos, expirados e inexistentes
- Endpoints /viewer protegidos por el mismo control
"""

import pytest
from datetime import datetime, timedelta, timezone
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.main import app
from app.modules.share_links.gate import gate_for, TokenGate, UnrestrictedGate
from app.modules.share_links.models import ShareLink
from app.modules.share_links.service import ShareLinkService


client = TestClient(app)


# ===== FIXTURES =====

@pytest.fixture
def share_link(db_session: Session):
    link = ShareLink(token="tok-valido", name="Contador", active=True)
    db_session.add(link)
    db_session.commit()
    return link


@pytest.fixture
def inactive_link(db_session: Session):
    link = ShareLink(token="tok-inactivo", active=False)
    db_session.add(link)
    db_session.commit()
    return link


@pytest.fixture
def expired_link(db_session: Session):
    link = ShareLink(token="tok-expirado", active=True, expires_at=datetime.now(timezone.utc) - timedelta(days=1))
    db_session.add(link)
    db_session.commit()
    return link


class TestAccessGate:
    """Tests para AccessGate y sus variantes"""

    def test_gate_for_without_token(self):
        assert isinstance(gate_for(None), UnrestrictedGate)

    def test_gate_for_with_token(self):
        gate = gate_for("abc")
        assert isinstance(gate, TokenGate)
        assert gate.token == "abc"

    def test_unrestricted_always_authorized(self, db_session: Session):
        assert UnrestrictedGate().is_authorized(db_session) is True

    def test_valid_token(self, db_session: Session, share_link):
        assert TokenGate("tok-valido").is_authorized(db_session) is True

    def test_unknown_token(self, db_session: Session):
        assert TokenGate("nope").is_authorized(db_session) is False

    def test_inactive_token(self, db_session: Session, inactive_link):
        assert TokenGate("tok-inactivo").is_authorized(db_session) is False

    def test_expired_token(self, db_session: Session, expired_link):
        assert TokenGate("tok-expirado").is_authorized(db_session) is False

    def test_token_before_expiry(self, db_session: Session):
        db_session.add(ShareLink(
            token="tok-futuro", active=True, expires_at=datetime(2030, 1, 1, tzinfo=timezone.utc)
        ))
        db_session.commit()
        gate = TokenGate("tok-futuro", now=datetime(2029, 12, 31, tzinfo=timezone.utc))
        assert gate.is_authorized(db_session) is True
        gate = TokenGate("tok-futuro", now=datetime(2030, 1, 2, tzinfo=timezone.utc))
        assert gate.is_authorized(db_session) is False

    def test_authorize_raises_forbidden(self, db_session: Session):
        with pytest.raises(HTTPException) as exc:
            TokenGate("nope").authorize(db_session)
        assert exc.value.status_code == 403


class TestViewerEndpoints:
    """Tests para el visor de solo lectura"""

    def test_viewer_without_token(self):
        response = client.get("/viewer")
        assert response.status_code == 200
        assert "Vista de solo lectura" in response.text

    def test_viewer_with_valid_token(self, share_link):
        response = client.get("/viewer", params={"token": "tok-valido"})
        assert response.status_code == 200

    @pytest.mark.parametrize("token", ["nope", "tok-inactivo", "tok-expirado"])
    def test_viewer_denied(self, inactive_link, expired_link, token):
        response = client.get("/viewer", params={"token": token})
        assert response.status_code == 403

    def test_document_redirect_denied(self, inactive_link):
        response = client.get(
            "/viewer/invoices/00000000-0000-0000-0000-000000000000/document",
            params={"token": "tok-inactivo"},
            follow_redirects=False,
        )
        assert response.status_code == 403


class TestShareLinkService:
    """Tests para el alta y baja de enlaces"""

    def test_create_link_generates_unique_tokens(self, db_session: Session):
        service = ShareLinkService(db_session)
        first = service.create_link("Contador")
        second = service.create_link()

        assert first.token != second.token
        assert len(first.token) >= 32
        assert first.active is True
        assert first.expires_at is None

    def test_created_link_opens_viewer(self, db_session: Session):
        link = ShareLinkService(db_session).create_link("Socio", expires_in_days=7)

        assert link.expires_at is not None
        assert client.get(f"/viewer?token={link.token}").status_code == 200

    def test_create_link_rejects_non_positive_days(self, db_session: Session):
        with pytest.raises(HTTPException) as exc:
            ShareLinkService(db_session).create_link(expires_in_days=0)
        assert exc.value.status_code == 400

    def test_deactivate_link_blocks_viewer(self, db_session: Session, share_link):
        ShareLinkService(db_session).deactivate_link("tok-valido")

        assert client.get("/viewer?token=tok-valido").status_code == 403

    def test_deactivate_unknown_link(self, db_session: Session):
        with pytest.raises(HTTPException) as exc:
            ShareLinkService(db_session).deactivate_link("nope")
        assert exc.value.status_code == 404
