"""
Tests for record normalization.
"""

import pytest

from sfbwatch.parsing.normalizer import (
    FIELD_RULES,
    extract_phone_number,
    has_sip_address,
    normalize_record,
    parse_boolean,
)
from sfbwatch.monitor.types import CanonicalUserRecord


class TestParseBoolean:
    @pytest.mark.parametrize("value", ["true", "TRUE", " yes ", "1", "Enabled"])
    def test_true_strings(self, value):
        assert parse_boolean(value) is True

    @pytest.mark.parametrize("value", ["false", "no", "0", "disabled", ""])
    def test_other_strings_false(self, value):
        assert parse_boolean(value, default=True) is False

    def test_native_bool_passes_through(self):
        assert parse_boolean(True) is True
        assert parse_boolean(False, default=True) is False

    def test_numbers(self):
        assert parse_boolean(1) is True
        assert parse_boolean(0, default=True) is False
        assert parse_boolean(2.5) is True

    def test_none_gives_default(self):
        assert parse_boolean(None) is False
        assert parse_boolean(None, default=True) is True


class TestExtractPhoneNumber:
    def test_tel_uri(self):
        assert extract_phone_number("tel:+15551234567") == "+15551234567"

    def test_tel_uri_with_extension_and_punctuation(self):
        assert extract_phone_number("TEL:+1 (555) 123-4567;ext=89") == "+15551234567"

    def test_bare_number(self):
        assert extract_phone_number("+44 20 7946 0958") == "+442079460958"

    def test_short_bare_number_ignored(self):
        assert extract_phone_number("ext 1234") is None

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty(self, value):
        assert extract_phone_number(value) is None


class TestHasSipAddress:
    def test_pascal_case(self):
        assert has_sip_address({"SipAddress": "sip:a@b.com"})

    def test_snake_case(self):
        assert has_sip_address({"sip_address": "sip:a@b.com"})

    def test_missing_or_empty(self):
        assert not has_sip_address({"DisplayName": "Nobody"})
        assert not has_sip_address({"SipAddress": ""})


class TestNormalizeRecord:
    def test_rules_cover_every_field_but_phone_number(self):
        ruled = {rule.field for rule in FIELD_RULES}
        assert ruled == set(CanonicalUserRecord.field_names()) - {"phone_number"}

    def test_pascal_case_row(self):
        record = normalize_record(
            {
                "SipAddress": "sip:alice@contoso.com",
                "DisplayName": "Alice",
                "LineURI": "tel:+15551234567",
                "EnterpriseVoiceEnabled": "True",
                "RegistrarPool": "pool01.contoso.com",
            }
        )
        assert record.sip_address == "sip:alice@contoso.com"
        assert record.display_name == "Alice"
        assert record.phone_number == "+15551234567"
        assert record.enterprise_voice_enabled is True
        assert record.registrar_pool == "pool01.contoso.com"

    def test_snake_case_row(self):
        record = normalize_record({"sip_address": "sip:bob@contoso.com", "display_name": "Bob", "dial_plan": "US"})
        assert record.sip_address == "sip:bob@contoso.com"
        assert record.dial_plan == "US"

    def test_aliases(self):
        record = normalize_record(
            {
                "SipAddress": "sip:c@contoso.com",
                "Name": "Carol",
                "GivenName": "Carol",
                "Surname": "White",
                "UPN": "carol@contoso.com",
                "JobTitle": "Engineer",
                "OfficeLocation": "Berlin",
                "Organization": "Contoso",
                "Pool": "pool02",
            }
        )
        assert record.display_name == "Carol"
        assert record.first_name == "Carol"
        assert record.last_name == "White"
        assert record.user_principal_name == "carol@contoso.com"
        assert record.title == "Engineer"
        assert record.office == "Berlin"
        assert record.company == "Contoso"
        assert record.registrar_pool == "pool02"

    def test_first_key_wins(self):
        record = normalize_record({"SipAddress": "sip:a@b.com", "DisplayName": "Pascal", "display_name": "snake"})
        assert record.display_name == "Pascal"

    def test_empty_value_falls_through_to_next_key(self):
        record = normalize_record({"SipAddress": "", "sip_address": "sip:a@b.com"})
        assert record.sip_address == "sip:a@b.com"

    def test_defaults(self):
        record = normalize_record({"SipAddress": "sip:a@b.com"})
        assert record.display_name == ""
        assert record.department is None
        assert record.enabled is True
        assert record.enterprise_voice_enabled is False
        assert record.hosted_voicemail_enabled is False
        assert record.hosted_voice_mail_enabled is False
        assert record.phone_number is None

    def test_json_false_is_kept(self):
        record = normalize_record({"SipAddress": "sip:a@b.com", "Enabled": False})
        assert record.enabled is False

    def test_non_string_text_is_stringified(self):
        record = normalize_record({"SipAddress": "sip:a@b.com", "Department": 42})
        assert record.department == "42"
