"""
Unit tests for shared helpers.

Run tests:
    pytest tests/core/test_utils.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from nextsub.core.utils import (
    create_jwt_token,
    decode_jwt_token,
    ensure_aware,
    mask_code,
    normalize_email,
    utc_now,
    write_to_file_async,
)


class TestNormalizeEmail:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("admin@example.com", "admin@example.com"),
            ("  Admin@Example.COM ", "admin@example.com"),
            ("\tADMIN@EXAMPLE.COM\n", "admin@example.com"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_email(raw) == expected


class TestMaskCode:
    def test_keeps_last_two(self):
        assert mask_code("Xy7#pQ2!rT9@kL4$mN8&") == "*" * 18 + "8&"

    def test_short_code_fully_masked(self):
        assert mask_code("abcd") == "****"

    def test_empty(self):
        assert mask_code(None) == ""
        assert mask_code("") == ""


class TestDatetimes:
    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is not None

    def test_ensure_aware_naive(self):
        naive = datetime(2026, 1, 1, 12, 0)
        assert ensure_aware(naive) == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_ensure_aware_keeps_aware(self):
        aware = datetime(2026, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=1)))
        assert ensure_aware(aware) is aware


class TestJwt:
    def test_round_trip(self):
        token = create_jwt_token({"sub": "admin@example.com"}, timedelta(minutes=5))
        payload = decode_jwt_token(token)

        assert payload is not None
        assert payload["sub"] == "admin@example.com"
        assert {"exp", "iat", "jti"} <= payload.keys()

    def test_none_data_rejected(self):
        with pytest.raises(ValueError):
            create_jwt_token(None)

    def test_expired(self):
        token = create_jwt_token({"sub": "x"}, timedelta(seconds=-5))
        assert decode_jwt_token(token) is None

    @pytest.mark.parametrize("token", [None, "", "garbage"])
    def test_invalid(self, token):
        assert decode_jwt_token(token) is None


class TestWriteToFileAsync:
    @pytest.mark.asyncio
    async def test_writes(self, tmp_path):
        target = tmp_path / "openapi.json"
        await write_to_file_async(str(target), '{"openapi": "3.1.0"}')

        assert target.read_text(encoding="utf-8") == '{"openapi": "3.1.0"}'

    @pytest.mark.asyncio
    async def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(OSError):
            await write_to_file_async(str(tmp_path / "missing" / "file.json"), "{}")
