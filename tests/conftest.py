import io
import os
import tempfile

# ambiente de teste antes de importar o pacote (settings lê no import)
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="certdesk-tests-"))
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("PUBLIC_SITE_URL", "https://certs.example.org")

import pytest
from fastapi.testclient import TestClient
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import certdesk.models  # noqa: F401
from certdesk.api.deps import get_db, get_role_resolver, get_session_factory
from certdesk.db.base import Base
from certdesk.db.init_db import ensure_user
from certdesk.main import api
from certdesk.models.admin_role import ROLE_ADMIN, ROLE_SUPER_ADMIN
from certdesk.services.roles import RoleResolver

PASSWORD = "s3cret-pass"


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def resolver():
    return RoleResolver(timeout=2)


@pytest.fixture
def client(session_factory, resolver):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    api.dependency_overrides[get_db] = override_get_db
    api.dependency_overrides[get_role_resolver] = lambda: resolver
    api.dependency_overrides[get_session_factory] = lambda: session_factory
    # sem "with": o startup (migrações) não roda nos testes
    yield TestClient(api, raise_server_exceptions=False)
    api.dependency_overrides.clear()


@pytest.fixture
def admin_user(db):
    return ensure_user(db, email="admin@certdesk.org", password=PASSWORD, role=ROLE_ADMIN, name="Admin")


@pytest.fixture
def super_admin_user(db):
    return ensure_user(db, email="root@certdesk.org", password=PASSWORD, role=ROLE_SUPER_ADMIN, name="Root")


def login(client, email, password=PASSWORD, path="/api/v1/auth/login"):
    resp = client.post(path, json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()


@pytest.fixture
def admin_headers(client, admin_user):
    tokens = login(client, admin_user.email)
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest.fixture
def super_headers(client, super_admin_user):
    tokens = login(client, super_admin_user.email, path="/api/v1/auth/super-admin/login")
    return {"Authorization": f"Bearer {tokens['access_token']}"}


def build_template(with_fields: bool = True) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=landscape(A4))
    c.setFont("Helvetica", 24)
    c.drawCentredString(421, 520, "Certificate of Completion")
    if with_fields:
        form = c.acroForm
        form.textfield(name="student_name", x=221, y=320, width=400, height=36,
                       borderWidth=0, fontName="Helvetica", fontSize=20)
        form.textfield(name="certificate_no", x=560, y=120, width=240, height=22,
                       borderWidth=0, fontName="Helvetica", fontSize=12)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture
def template_bytes():
    return build_template(with_fields=True)


@pytest.fixture
def plain_template_bytes():
    return build_template(with_fields=False)


@pytest.fixture
def template_path(tmp_path, template_bytes):
    path = tmp_path / "certificate-template.pdf"
    path.write_bytes(template_bytes)
    return str(path)


@pytest.fixture
def record():
    """Linha válida de entrada manual."""
    return {
        "name": "Asha Verma",
        "roll_no": "21CS044",
        "email": "Asha.Verma@College.edu",
        "phone": "98765 43210",
        "department": "CSE",
        "academic_year": "2025-2026",
        "location_or_institution": "Govt Polytechnic",
        "location": "Pune",
        "mode": "Online",
        "issued_by": "DARE",
        "date_issued": "2025-06-01",
    }


@pytest.fixture
def login_as(client):
    def _login(email, password=PASSWORD, path="/api/v1/auth/login"):
        return login(client, email, password, path)
    return _login
