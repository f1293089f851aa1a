# tests/unit/test_issuer.py
import threading
from itertools import chain, repeat

import pytest

from app.crud import participants_crud, routes_crud
from app.errors import CodeSpaceExhausted
from app.issuer import issue_missing_routes, issue_route, issue_routes
from app.models import Route
from app.utils.codes import generate_code

TAKEN = "AAAAAAAAAAAAAAAA"


def _scripted(*codes):
    """Generador determinista: devuelve `codes` en orden y después códigos aleatorios."""
    it = chain(codes, iter(generate_code, None))
    return lambda: next(it)


def test_issue_route_creates_unused_route(db):
    code = issue_route(db)
    route = routes_crud.get_by_code(db, code)
    assert route is not None
    assert route.used is False
    assert route.participant_id is None


def test_issue_route_skips_existing_codes(db):
    issue_route(db, generate=_scripted(TAKEN))
    code = issue_route(db, generate=_scripted(TAKEN, TAKEN, TAKEN, "BBBBBBBBBBBBBBBB"))
    assert code == "BBBBBBBBBBBBBBBB"
    assert db.query(Route).count() == 2


def test_issue_route_raises_when_code_space_exhausted(db):
    issue_route(db, generate=_scripted(TAKEN))
    with pytest.raises(CodeSpaceExhausted):
        issue_route(db, generate=lambda: TAKEN, max_attempts=25)
    assert db.query(Route).count() == 1


def test_issue_route_binds_participant(db):
    p = participants_crud.create(db, {"name": "Ana", "phone": "86999990001"})
    db.commit()
    code = issue_route(db, p.id)
    assert routes_crud.get_by_code(db, code).participant_id == p.id


def test_issue_routes_returns_distinct_codes(db):
    codes = issue_routes(db, 5)
    assert len(set(codes)) == 5


def test_issue_missing_routes_only_for_participants_without_one(db):
    a = participants_crud.create(db, {"name": "Ana", "phone": "86999990001"})
    b = participants_crud.create(db, {"name": "Bia", "phone": "86999990002"})
    db.commit()
    issue_route(db, a.id)

    results = issue_missing_routes(db)
    assert [r["participant_id"] for r in results] == [b.id]
    assert results[0]["success"] is True
    assert issue_missing_routes(db) == []


def test_concurrent_issuers_never_share_a_code(file_sessionmaker):
    # Todos los hilos empiezan con el mismo candidato: solo uno puede quedárselo.
    n = 8
    barrier = threading.Barrier(n)
    codes, errors = [], []

    def worker():
        session = file_sessionmaker()
        gen = _scripted(TAKEN)
        try:
            barrier.wait()
            codes.append(issue_route(session, generate=gen))
        except Exception as e:  # pragma: no cover - se reporta abajo
            errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(codes) == n
    assert len(set(codes)) == n
    assert codes.count(TAKEN) == 1

    session = file_sessionmaker()
    try:
        assert session.query(Route).count() == n
    finally:
        session.close()
