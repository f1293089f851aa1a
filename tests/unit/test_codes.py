# tests/unit/test_codes.py
import re

from app.utils.codes import CODE_LENGTH, generate_code


def test_generated_code_is_16_uppercase_hex():
    code = generate_code()
    assert len(code) == CODE_LENGTH == 16
    assert re.fullmatch(r"[0-9A-F]{16}", code)


def test_ten_thousand_codes_have_no_collisions():
    codes = {generate_code() for _ in range(10_000)}
    assert len(codes) == 10_000
