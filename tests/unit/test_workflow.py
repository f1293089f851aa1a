# tests/unit/test_workflow.py
import threading

import pytest

from app.crud import participants_crud, routes_crud
from app.errors import AlreadyUsedError, NotFoundError, ValidationError
from app.issuer import issue_route
from app.models import Confirmation
from app.notifier import NotificationDispatcher
from app.workflow import (
    RouteState,
    assert_transition,
    get_route_status,
    submit_response,
)
from conftest import FakeRelay


def test_transition_table():
    assert_transition(RouteState.UNUSED, RouteState.USED)
    with pytest.raises(AlreadyUsedError):
        assert_transition(RouteState.USED, RouteState.USED)


def test_confirm_marks_route_used_and_records_confirmation(db):
    code = issue_route(db)
    result = submit_response(db, code, "  Ana Souza ", "(86) 99999-0001", "ANA@EXAMPLE.COM")

    assert result.success is True
    assert result.decision == "confirm"
    assert result.notification is None
    assert routes_crud.get_by_code(db, code).used is True

    conf = db.get(Confirmation, result.confirmation_id)
    assert conf.route_code == code
    assert conf.name == "Ana Souza"
    assert conf.phone == "86999990001"
    assert conf.email == "ana@example.com"
    assert conf.webhook_sent is False


def test_decline_marks_used_without_confirmation(db):
    code = issue_route(db)
    result = submit_response(db, code, "Ana", "86999990001", decision="decline")

    assert result.success is True
    assert result.confirmation_id is None
    assert routes_crud.get_by_code(db, code).used is True
    assert db.query(Confirmation).count() == 0


def test_second_submission_is_rejected(db):
    code = issue_route(db)
    submit_response(db, code, "Ana", "86999990001")
    with pytest.raises(AlreadyUsedError):
        submit_response(db, code, "Outra Pessoa", "86999990002")
    assert db.query(Confirmation).count() == 1


@pytest.mark.parametrize(
    "name, phone, decision",
    [("", "86999990001", "confirm"), ("Ana", "   ", "confirm"), ("Ana", "86999990001", "maybe")],
)
def test_validation_errors_do_not_touch_the_route(db, name, phone, decision):
    code = issue_route(db)
    with pytest.raises(ValidationError):
        submit_response(db, code, name, phone, decision=decision)
    assert routes_crud.get_by_code(db, code).used is False
    assert db.query(Confirmation).count() == 0


def test_unknown_code_is_not_found(db):
    with pytest.raises(NotFoundError):
        submit_response(db, "0000000000000000", "Ana", "86999990001")


def test_phone_without_digits_is_kept_trimmed(db):
    code = issue_route(db)
    result = submit_response(db, code, "Ana", "  sem telefone  ")
    assert db.get(Confirmation, result.confirmation_id).phone == "sem telefone"


def test_delivered_ack_marks_webhook_sent(seeded_db):
    relay = FakeRelay()
    code = issue_route(seeded_db)
    result = submit_response(
        seeded_db, code, "Ana", "86999990001", dispatcher=NotificationDispatcher(seeded_db, relay)
    )

    assert result.notification.delivered is True
    assert len(relay.sent) == 1
    payload = relay.sent[0]
    assert payload["type"] == "confirm_ack"
    assert payload["phone"] == "86999990001"
    assert "Ana" in payload["message"]
    assert "{location}" not in payload["message"]
    assert seeded_db.get(Confirmation, result.confirmation_id).webhook_sent is True


def test_relay_failure_keeps_confirmation(seeded_db):
    code = issue_route(seeded_db)
    result = submit_response(
        seeded_db, code, "Ana", "86999990001", dispatcher=NotificationDispatcher(seeded_db, FakeRelay(fail=True))
    )

    assert result.success is True
    assert result.notification.delivered is False
    assert result.notification.error
    assert routes_crud.get_by_code(seeded_db, code).used is True
    conf = seeded_db.get(Confirmation, result.confirmation_id)
    assert conf is not None
    assert conf.webhook_sent is False


def test_missing_template_does_not_fail_the_response(db):
    # Sin plantillas sembradas: la respuesta se guarda igual.
    code = issue_route(db)
    result = submit_response(db, code, "Ana", "86999990001", dispatcher=NotificationDispatcher(db, FakeRelay()))
    assert result.success is True
    assert result.notification is None
    assert db.get(Confirmation, result.confirmation_id) is not None


def test_decline_sends_decline_ack(seeded_db):
    relay = FakeRelay()
    code = issue_route(seeded_db)
    submit_response(
        seeded_db, code, "Ana", "86999990001", decision="decline", dispatcher=NotificationDispatcher(seeded_db, relay)
    )
    assert [p["type"] for p in relay.sent] == ["decline_ack"]


def test_route_status_includes_bound_participant(db):
    p = participants_crud.create(db, {"name": "Ana", "phone": "86999990001"})
    db.commit()
    code = issue_route(db, p.id)

    status = get_route_status(db, code)
    assert status["used"] is False
    assert status["state"] == "unused"
    assert status["participant"]["name"] == "Ana"
    assert status["participant"]["phone"].endswith("0001")
    assert "86999" not in status["participant"]["phone"]

    with pytest.raises(NotFoundError):
        get_route_status(db, "FFFFFFFFFFFFFFFF")


def test_concurrent_submissions_only_one_wins(file_sessionmaker):
    setup = file_sessionmaker()
    try:
        code = issue_route(setup)
    finally:
        setup.close()

    n = 6
    barrier = threading.Barrier(n)
    outcomes = []

    def worker(i):
        session = file_sessionmaker()
        try:
            barrier.wait()
            submit_response(session, code, f"Pessoa {i}", f"8699999000{i}")
            outcomes.append("ok")
        except AlreadyUsedError:
            outcomes.append("used")
        except Exception as e:  # pragma: no cover - se reporta abajo
            outcomes.append(repr(e))
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("used") == n - 1

    check = file_sessionmaker()
    try:
        assert check.query(Confirmation).filter(Confirmation.route_code == code).count() == 1
        assert routes_crud.get_by_code(check, code).used is True
    finally:
        check.close()


def test_registration_log_masks_phone_and_email(db):
    from loguru import logger

    lines = []
    sink_id = logger.add(lines.append, format="{message}")
    try:
        code = issue_route(db)
        submit_response(db, code, "Ana", "86999990001", "ana.souza@example.com")
    finally:
        logger.remove(sink_id)

    registered = next(line for line in lines if "registrada" in line)
    assert "an*******@example.com" in registered
    assert "*******0001" in registered
    assert "ana.souza@" not in registered
    assert "86999990001" not in registered
