# tests/unit/test_templates.py
import json

import pytest

from app.crud import templates_crud
from app.errors import NotFoundError, ValidationError
from app.models import MessageTemplate, TemplateTypeEnum


def test_seed_defaults_only_once(db):
    assert templates_crud.seed_defaults(db) == 4
    assert templates_crud.seed_defaults(db) == 0
    assert db.query(MessageTemplate).count() == 4


def test_event_info_is_json_with_expected_keys(seeded_db):
    info = templates_crud.load_event_info(seeded_db)
    assert set(info) == {"event_name", "location", "address", "days", "schedule", "closing_message"}


def test_invalid_event_info_json_gives_empty_variables(seeded_db):
    tpl = templates_crud.get_active(seeded_db, TemplateTypeEnum.event_info)
    templates_crud.update(seeded_db, tpl.id, body="{not json")
    assert templates_crud.load_event_info(seeded_db) == {}


def test_update_appends_revision(seeded_db):
    tpl = templates_crud.get_active(seeded_db, "invite")
    old_body = tpl.body

    templates_crud.update(seeded_db, tpl.id, body="Oi {name}: {base_url}/{code}", editor="carla", reason="texto curto")
    templates_crud.update(seeded_db, tpl.id, title="Convite v3")

    history = templates_crud.history(seeded_db, tpl.id)
    assert len(history) == 2
    latest, first = history
    assert first.previous_body == old_body
    assert first.new_body == "Oi {name}: {base_url}/{code}"
    assert first.editor == "carla"
    assert first.reason == "texto curto"
    assert latest.editor == "admin"
    assert latest.previous_body == latest.new_body
    assert templates_crud.get_by_id(seeded_db, tpl.id).title == "Convite v3"


def test_most_recently_updated_active_template_wins(seeded_db):
    newer = templates_crud.create(seeded_db, "confirm_ack", "Nova", "Nova confirmação {name}")
    assert templates_crud.get_active(seeded_db, "confirm_ack").id == newer.id

    templates_crud.set_active(seeded_db, newer.id, False)
    assert templates_crud.get_active(seeded_db, "confirm_ack").id != newer.id


def test_event_info_feeds_json_body(seeded_db):
    tpl = templates_crud.get_active(seeded_db, "event_info")
    data = json.loads(tpl.body)
    data["location"] = "Auditório Central"
    templates_crud.update(seeded_db, tpl.id, body=json.dumps(data))
    assert templates_crud.load_event_info(seeded_db)["location"] == "Auditório Central"


def test_unknown_type_and_missing_template(db):
    with pytest.raises(ValidationError):
        templates_crud.get_active(db, "sms")
    with pytest.raises(NotFoundError):
        templates_crud.update(db, 999, body="x")
    with pytest.raises(NotFoundError):
        templates_crud.history(db, 999)
