# app/utils/normalize.py
# =================================================================================
# 🧼 Normalización de registros crudos del formulario de inscripción
# ---------------------------------------------------------------------------------
# - Mapea los encabezados del cuestionario externo (Google Forms, en portugués)
#   y también las claves canónicas snake_case al modelo Participant.
# - Recorta strings, deja solo dígitos en teléfono/documento, parsea fechas
#   y extrae la edad numérica. Tolera claves ausentes, extra y valores no-string.
# =================================================================================

import re
import unicodedata
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional

# Edades fuera de este rango se descartan (columna Integer de 32 bits en Postgres).
MIN_AGE = 0
MAX_AGE = 150

# ---------------------------------------------------------------------------------
# 🗺️ Encabezados del cuestionario → campo canónico
# ---------------------------------------------------------------------------------
QUESTIONNAIRE_FIELDS: Dict[str, str] = {
    "Carimbo de data/hora": "submitted_at",
    "Digite seu nome sem abreviar": "name",
    "Gênero": "gender",
    "Idade": "age",
    "CPF": "national_id",
    "Cidade": "city",
    "Bairro": "neighborhood",
    "Você é aposentado(a)?": "retired",
    "Telefone/Celular/WhatsApp": "phone",
    "E-mail (se houver)": "email",
    "Você participa de qual projeto de extensão?": "extension_project",
    "Caso você não seja de nenhum projeto citado acima. \n1. Diga de qual grupo você faz parte, se houver. "
    "\n2. Como soube do treinamento. \n3. Se inscrever para os dia 28 e 30 de outubro": "other_project",
    "Autorizo o tratamento dos meus dados pessoais pela SIA nos termos da Lei nº 13.709/2018 (LGPD).": "data_consent",
    "Dentre esses temas, qual(is) você tem mais dificuldade": "difficulties",
}

TEXT_FIELDS = (
    "name", "gender", "city", "neighborhood", "retired", "email",
    "extension_project", "other_project", "data_consent", "difficulties",
)
CANONICAL_FIELDS = set(TEXT_FIELDS) | {"submitted_at", "age", "national_id", "phone"}

# Alias legacy aceptados además de los encabezados (exportaciones antiguas).
ALIASES: Dict[str, str] = {
    "nome": "name",
    "telefone": "phone",
    "cpf": "national_id",
    "idade": "age",
    "genero": "gender",
    "cidade": "city",
    "bairro": "neighborhood",
    "aposentado": "retired",
    "projeto_extensao": "extension_project",
    "outro_projeto": "other_project",
    "autorizacao_dados": "data_consent",
    "dificuldades": "difficulties",
    "carimbo_data_hora": "submitted_at",
    "full_name": "name",
}

DATE_FORMATS = (
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
)


def _header_key(header: Any) -> str:
    """Clave comparable de un encabezado: sin acentos, espacios colapsados, casefold."""
    txt = unicodedata.normalize("NFKD", str(header or ""))
    txt = "".join(ch for ch in txt if not unicodedata.combining(ch))
    txt = re.sub(r"\s+", " ", txt).strip()
    return txt.casefold()


_HEADER_LOOKUP: Dict[str, str] = {_header_key(k): v for k, v in QUESTIONNAIRE_FIELDS.items()}
_HEADER_LOOKUP.update({_header_key(k): v for k, v in ALIASES.items()})
_HEADER_LOOKUP.update({_header_key(f): f for f in CANONICAL_FIELDS})


def clean_text(value: Any) -> Optional[str]:
    """Recorta y devuelve None si queda vacío (acepta números/NaN de pandas)."""
    if value is None:
        return None
    if isinstance(value, float) and value != value:   # NaN
        return None
    txt = str(value).strip()
    return txt or None


def only_digits(value: Any) -> str:
    """Devuelve solo los dígitos contenidos en el valor."""
    return "".join(ch for ch in str(value or "") if ch.isdigit())


def normalize_phone(value: Any) -> Optional[str]:
    digits = only_digits(clean_text(value) or "")
    return digits or None


def normalize_national_id(value: Any) -> Optional[str]:
    digits = only_digits(clean_text(value) or "")
    return digits or None


def _plausible_age(age: int) -> Optional[int]:
    return age if MIN_AGE <= age <= MAX_AGE else None


def parse_age(value: Any) -> Optional[int]:
    """'67 anos' -> 67; sin dígitos o fuera de [MIN_AGE, MAX_AGE] (p. ej. un teléfono) -> None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return _plausible_age(value)
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        return _plausible_age(int(value))
    match = re.search(r"\d+", str(value or ""))
    return _plausible_age(int(match.group(0))) if match else None


def parse_datetime(value: Any) -> Optional[datetime]:
    """Acepta datetime/date, 'dd/mm/YYYY HH:MM:SS', 'dd/mm/YYYY' e ISO; None si no parsea."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    txt = clean_text(value)
    if not txt:
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(txt, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(txt.replace("Z", "+00:00"))
    except ValueError:
        return None


def map_fields(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Traduce encabezados conocidos a campos canónicos; ignora el resto."""
    mapped: Dict[str, Any] = {}
    for key, value in (raw or {}).items():
        field = _HEADER_LOOKUP.get(_header_key(key))
        if field and field not in mapped:
            mapped[field] = value
    return mapped


def normalize_record(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Devuelve un dict listo para crear un Participant.
    Los campos requeridos (name, phone) pueden quedar en None: el importador decide.
    """
    mapped = map_fields(raw)
    record: Dict[str, Any] = {field: clean_text(mapped.get(field)) for field in TEXT_FIELDS}
    record["email"] = (record["email"] or "").lower() or None
    record["phone"] = normalize_phone(mapped.get("phone"))
    record["national_id"] = normalize_national_id(mapped.get("national_id"))
    record["age"] = parse_age(mapped.get("age"))
    record["submitted_at"] = parse_datetime(mapped.get("submitted_at"))
    return record
