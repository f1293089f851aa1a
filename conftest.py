# conftest.py
# -------------------------------------------------------------------------------------
# Archivo: conftest.py (raíz del proyecto)
# Propósito: fixtures compartidas por tests unitarios y de API.
#   - Engine SQLite en memoria (StaticPool) con el esquema completo por test.
#   - Sesión `db`, relay falso (`FakeRelay`) y TestClient con get_db sobrescrito.
#   - `file_sessionmaker`: SQLite en archivo para tests de concurrencia (una sesión por hilo).
# Las variables de entorno se fijan ANTES de importar `app` (app/db.py aborta si
# DATABASE_URL está vacía y FORCE_DB=postgres).
# -------------------------------------------------------------------------------------

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("FORCE_DB", "sqlite")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("DRY_RUN", "1")

from typing import Any, Dict, List  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.db import Base, build_engine, get_db  # noqa: E402
from app import models  # noqa: E402,F401
from app.crud import templates_crud  # noqa: E402
from app.errors import RelayDeliveryError  # noqa: E402

ADMIN_KEY = os.environ["ADMIN_API_KEY"]


# =========================
# Relay falso
# =========================
class FakeRelay:
    """Registra los payloads; `fail=True` simula un relay caído, `dry_run=True` una simulación."""

    def __init__(self, fail: bool = False, dry_run: bool = False):
        self.fail = fail
        self.dry_run = dry_run
        self.sent: List[Dict[str, Any]] = []

    def deliver(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if self.fail:
            raise RelayDeliveryError("relay fuera de servicio")
        if self.dry_run:
            return {"dry_run": True, "status_code": None, "response": None}
        self.sent.append(payload)
        return {"dry_run": False, "status_code": 200, "response": {"ok": True}}


# =========================
# Base de datos
# =========================
@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded_db(db):
    """Sesión con las plantillas por defecto cargadas."""
    templates_crud.seed_defaults(db)
    return db


@pytest.fixture
def file_sessionmaker(tmp_path):
    """SQLite en archivo: cada hilo abre su propia conexión/sesión."""
    eng = build_engine(f"sqlite:///{tmp_path / 'concurrency.db'}")
    Base.metadata.create_all(bind=eng)
    yield sessionmaker(bind=eng, autocommit=False, autoflush=False)
    eng.dispose()


# =========================
# Relay + API
# =========================
@pytest.fixture
def relay():
    return FakeRelay()


@pytest.fixture
def client(session_factory, relay):
    from fastapi.testclient import TestClient

    from app.main import app
    from app.relay import get_relay

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    seed = session_factory()
    try:
        templates_crud.seed_defaults(seed)
    finally:
        seed.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_relay] = lambda: relay
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"x-admin-key": ADMIN_KEY}
