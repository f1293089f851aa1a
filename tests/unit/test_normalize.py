# tests/unit/test_normalize.py
from datetime import datetime

from app.utils.normalize import (
    map_fields,
    normalize_record,
    parse_age,
    parse_datetime,
)

FORM_ROW = {
    "Carimbo de data/hora": "03/10/2025 14:22:05",
    "Digite seu nome sem abreviar": "  Maria das Graças  ",
    "Gênero": "Feminino",
    "Idade": "67 anos",
    "CPF": "123.456.789-09",
    "Cidade": "Teresina",
    "Bairro": "Centro",
    "Você é aposentado(a)?": "Sim",
    "Telefone/Celular/WhatsApp": "(86) 99985-2058",
    "E-mail (se houver)": " Maria@Example.COM ",
    "Você participa de qual projeto de extensão?": "Vida Ativa",
    "Autorizo o tratamento dos meus dados pessoais pela SIA nos termos da Lei nº 13.709/2018 (LGPD).": "Sim",
    "Dentre esses temas, qual(is) você tem mais dificuldade": "WhatsApp",
    "Coluna desconhecida": "ignorada",
}


def test_questionnaire_headers_map_to_fields():
    rec = normalize_record(FORM_ROW)
    assert rec["name"] == "Maria das Graças"
    assert rec["phone"] == "86999852058"
    assert rec["national_id"] == "12345678909"
    assert rec["email"] == "maria@example.com"
    assert rec["age"] == 67
    assert rec["submitted_at"] == datetime(2025, 10, 3, 14, 22, 5)
    assert rec["extension_project"] == "Vida Ativa"
    assert rec["data_consent"] == "Sim"
    assert "Coluna desconhecida" not in rec


def test_headers_match_without_accents_or_extra_spaces():
    mapped = map_fields({"genero": "M", "TELEFONE/CELULAR/WHATSAPP": "86 9999", "Digite  seu nome sem abreviar": "Ana"})
    assert mapped == {"gender": "M", "phone": "86 9999", "name": "Ana"}


def test_canonical_keys_and_non_string_values():
    rec = normalize_record({"name": "José", "phone": 86999990000, "age": 70.0, "national_id": None})
    assert rec["name"] == "José"
    assert rec["phone"] == "86999990000"
    assert rec["age"] == 70
    assert rec["national_id"] is None
    assert rec["email"] is None


def test_missing_keys_are_none():
    rec = normalize_record({})
    assert rec["name"] is None and rec["phone"] is None and rec["submitted_at"] is None


def test_parse_age_and_dates():
    assert parse_age("idade: 72") == 72
    assert parse_age("não informado") is None
    assert parse_age("99999999999999999999") is None
    assert parse_age("86999990001") is None
    assert parse_age(151) is None
    assert parse_age(150.0) == 150
    assert parse_age(float("inf")) is None
    assert parse_age("0") == 0
    assert parse_datetime("14/10/2025") == datetime(2025, 10, 14)
    assert parse_datetime("2025-10-14T08:00:00") == datetime(2025, 10, 14, 8, 0, 0)
    assert parse_datetime("ontem") is None
