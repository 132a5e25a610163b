import pytest

from app.features.auth.services.sandbox import SandboxMode
from app.features.auth.utils.phone import (
    LocaleValidationPolicy,
    get_phone_policy,
    is_valid_generic_phone,
    is_valid_israeli_mobile,
    mask_phone,
    normalize_israeli_phone,
)


class TestNormalizeIsraeliPhone:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("0501234567", "+972501234567"),
            ("050-123-4567", "+972501234567"),
            ("050 123 4567", "+972501234567"),
            ("501234567", "+972501234567"),
            ("+972 50-123-4567", "+972501234567"),
            ("+33612345678", "+33612345678"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_israeli_phone(raw) == expected

    def test_normalize_is_idempotent(self):
        once = normalize_israeli_phone("052-765 4321")
        assert normalize_israeli_phone(once) == once

    @pytest.mark.parametrize(
        "raw,canonical",
        [
            ("050-123-4567", "+972501234567"),
            ("0501234567", "+972501234567"),
            ("+972 50 123 4567", "+972501234567"),
            ("050 123-4567", "+972501234567"),
            ("0511234567", "+972511234567"),
            ("051-123 4567", "+972511234567"),
        ],
    )
    def test_separators_and_trunk_prefix_do_not_change_validity(self, raw, canonical):
        normalized = normalize_israeli_phone(raw)

        assert normalized == canonical
        assert is_valid_israeli_mobile(normalized) == is_valid_israeli_mobile(canonical)


class TestValidation:
    @pytest.mark.parametrize("prefix", ["50", "52", "53", "54", "55", "58"])
    def test_valid_israeli_mobile_prefixes(self, prefix):
        assert is_valid_israeli_mobile(f"+972{prefix}1234567")

    @pytest.mark.parametrize(
        "phone",
        [
            "+972511234567",  # not a mobile prefix
            "+97250123456",  # subscriber number too short
            "+9725012345678",  # too long
            "0501234567",  # not canonical
            "+33612345678",
        ],
    )
    def test_invalid_israeli_mobile(self, phone):
        assert not is_valid_israeli_mobile(phone)

    def test_generic_check_only_needs_plus(self):
        assert is_valid_generic_phone("+1")
        assert is_valid_generic_phone("+972511234567")
        assert not is_valid_generic_phone("0612345678")

    def test_generic_accepts_what_israeli_rejects(self):
        phone = "+972591234567"
        assert is_valid_generic_phone(phone)
        assert not is_valid_israeli_mobile(phone)


class TestMaskPhone:
    def test_mask(self):
        assert mask_phone("+972501234567") == "+97250****67"

    def test_short_number_unchanged(self):
        assert mask_phone("+12345") == "+12345"


class TestPhonePolicy:
    def test_policies_by_name(self):
        generic = get_phone_policy("generic")
        israeli = get_phone_policy(LocaleValidationPolicy.ISRAELI_MOBILE)

        assert generic.locale == "fr"
        assert israeli.locale == "he"
        assert generic.normalize("+33 6-12") == "+33612"
        assert israeli.normalize("0501234567") == "+972501234567"

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            get_phone_policy("martian")


class TestSandboxMode:
    def test_disabled_by_default(self):
        assert not SandboxMode().covers("+972500000000")

    def test_covers_any_form_of_the_number(self):
        sandbox = SandboxMode.build(enabled=True, phones=["+972500000000"], code="123456")

        assert sandbox.covers("+972500000000")
        assert sandbox.covers("+972 50-000-0000")
        assert not sandbox.covers("+972500000001")

    def test_accepts_only_the_sandbox_code(self):
        sandbox = SandboxMode.build(enabled=True, phones=["+972500000000"], code="123456")

        assert sandbox.accepts("123456")
        assert sandbox.accepts(" 123456 ")
        assert not sandbox.accepts("654321")

    def test_non_ascii_code_is_rejected(self):
        sandbox = SandboxMode.build(enabled=True, phones=["+972500000000"], code="123456")

        assert sandbox.accepts("12345é") is False
        assert sandbox.accepts("١٢٣٤٥٦") is False

    def test_empty_code_accepts_nothing(self):
        assert not SandboxMode(enabled=True).accepts("")
