# tests/unit/test_importer.py
import pytest
from sqlalchemy.exc import OperationalError

from app.crud import participants_crud, routes_crud
from app.errors import CodeSpaceExhausted
from app.importer import MAX_REPORTED_FAILURES, import_batch, read_table
from app.models import Participant, Route


def _row(name, phone, cpf=None, **extra):
    row = {"Digite seu nome sem abreviar": name, "Telefone/Celular/WhatsApp": phone}
    if cpf is not None:
        row["CPF"] = cpf
    row.update(extra)
    return row


def test_imports_and_issues_one_route_each(db):
    summary = import_batch(db, [_row("Ana", "86 99999-0001", "111.111.111-11"), _row("Bia", "86999990002")])

    assert (summary.processed, summary.imported, summary.duplicates, summary.errors) == (2, 2, 0, 0)
    assert db.query(Participant).count() == 2
    for item in summary.results:
        route = routes_crud.get_by_code(db, item["code"])
        assert route.participant_id == item["participant_id"]


def test_duplicate_national_id_leaves_existing_row_untouched(db):
    import_batch(db, [_row("Ana Original", "86999990001", "111.111.111-11", Cidade="Teresina")])

    summary = import_batch(db, [_row("Ana Alterada", "86911112222", "11111111111", Cidade="Parnaíba")])

    assert summary.duplicates == 1
    assert summary.imported == 0
    assert summary.duplicate_details[0]["matched_on"] == ["national_id"]
    only = db.query(Participant).one()
    assert only.name == "Ana Original"
    assert only.city == "Teresina"
    assert db.query(Route).count() == 1


def test_duplicate_phone_is_detected_even_with_different_document(db):
    import_batch(db, [_row("Ana", "86999990001", "11111111111")])
    summary = import_batch(db, [_row("Marido da Ana", "(86) 99999-0001", "22222222222")])
    assert summary.duplicates == 1
    assert summary.duplicate_details[0]["matched_on"] == ["phone"]


def test_empty_document_never_matches(db):
    summary = import_batch(db, [_row("Ana", "86999990001", ""), _row("Bia", "86999990002", "")])
    assert summary.imported == 2
    assert summary.duplicates == 0


def test_duplicate_within_the_same_batch(db):
    summary = import_batch(db, [_row("Ana", "86999990001"), _row("Ana de novo", "86999990001")])
    assert (summary.imported, summary.duplicates) == (1, 1)


def test_missing_required_fields_are_errors_and_batch_continues(db):
    summary = import_batch(db, [_row("", "86999990001"), _row("Sem Telefone", ""), _row("Bia", "86999990002")])

    assert summary.processed == 3
    assert summary.imported == 1
    assert summary.errors == 2
    assert [f["row"] for f in summary.failures] == [1, 2]
    assert summary.failures[1]["name"] == "Sem Telefone"


def test_storage_error_becomes_row_error(db, monkeypatch):
    original = participants_crud.create
    calls = {"n": 0}

    def flaky_create(session, data):
        calls["n"] += 1
        if calls["n"] == 1:
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))
        return original(session, data)

    monkeypatch.setattr(participants_crud, "create", flaky_create)
    summary = import_batch(db, [_row("Ana", "86999990001"), _row("Bia", "86999990002")])

    assert summary.errors == 1
    assert summary.imported == 1
    assert "armazenamento" in summary.failures[0]["reason"]


def test_route_failure_after_insert_is_reported_with_participant_id(db, monkeypatch):
    def exhausted(session, participant_id=None, **kwargs):
        raise CodeSpaceExhausted("sem códigos")

    monkeypatch.setattr("app.importer.issue_route", exhausted)
    summary = import_batch(db, [_row("Ana", "86999990001")])

    assert (summary.imported, summary.errors, summary.route_failures) == (1, 0, 1)
    assert summary.processed == summary.imported + summary.duplicates + summary.errors
    pid = summary.results[0]["participant_id"]
    assert summary.results[0]["code"] is None
    assert str(pid) in summary.failures[0]["reason"]
    assert participants_crud.list_without_route(db)[0].id == pid


def test_failures_list_is_bounded(db):
    rows = [{"Digite seu nome sem abreviar": f"P{i}"} for i in range(MAX_REPORTED_FAILURES + 20)]
    summary = import_batch(db, rows)
    assert summary.errors == MAX_REPORTED_FAILURES + 20
    assert len(summary.failures) == MAX_REPORTED_FAILURES


def test_issue_routes_false_skips_routes(db):
    summary = import_batch(db, [_row("Ana", "86999990001")], issue_routes=False)
    assert summary.imported == 1
    assert db.query(Route).count() == 0


def test_read_table_csv_keeps_strings(tmp_path):
    path = tmp_path / "inscricoes.csv"
    path.write_text(
        "Digite seu nome sem abreviar,Telefone/Celular/WhatsApp,CPF\n"
        "Ana,86999990001,01234567890\n"
        "Bia,86999990002,\n",
        encoding="utf-8",
    )
    rows = read_table(str(path))
    assert rows[0]["CPF"] == "01234567890"
    assert rows[1]["Digite seu nome sem abreviar"] == "Bia"


def test_read_table_rejects_unknown_extension(tmp_path):
    path = tmp_path / "dados.txt"
    path.write_text("x", encoding="utf-8")
    with pytest.raises(ValueError):
        read_table(str(path))


def test_out_of_range_age_does_not_abort_batch(db):
    rows = [
        _row("Ana", "86999990001", Idade="99999999999999999999"),
        _row("Bia", "86999990002", Idade="86999990003"),
        _row("Cida", "86999990004", Idade="70"),
    ]
    summary = import_batch(db, rows)

    assert (summary.processed, summary.imported, summary.errors) == (3, 3, 0)
    ages = {p.name: p.age for p in db.query(Participant).all()}
    assert ages == {"Ana": None, "Bia": None, "Cida": 70}
