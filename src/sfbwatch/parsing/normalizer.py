"""
Record normalization.

Vendor exports name the same field differently (``SipAddress`` in
PowerShell dumps, ``sip_address`` in database exports, ``GivenName`` from
AD tooling, ...). ``FIELD_RULES`` lists, per canonical field, the keys to try
in order; ``normalize_record`` interprets that table.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Literal

from sfbwatch.monitor.types import CanonicalUserRecord

TRUE_STRINGS = frozenset({"true", "yes", "1", "enabled"})

_TEL_URI_RE = re.compile(r"tel:([+]?[\d\-()\s]+)", re.IGNORECASE)
_BARE_NUMBER_RE = re.compile(r"([+]?[\d\-()\s]{10,})")
_NON_DIAL_CHARS_RE = re.compile(r"[^\d+]")


@dataclass(frozen=True)
class FieldRule:
    """How one canonical field is looked up in a raw row."""

    field: str
    keys: tuple[str, ...]
    kind: Literal["text", "flag"] = "text"
    default: Any = None


FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule("sip_address", ("SipAddress", "sip_address"), default=""),
    FieldRule("display_name", ("DisplayName", "display_name", "Name"), default=""),
    FieldRule("first_name", ("FirstName", "first_name", "GivenName")),
    FieldRule("last_name", ("LastName", "last_name", "Surname")),
    FieldRule("user_principal_name", ("UserPrincipalName", "user_principal_name", "UPN")),
    FieldRule("line_uri", ("LineURI", "line_uri")),
    FieldRule(
        "enterprise_voice_enabled", ("EnterpriseVoiceEnabled", "enterprise_voice_enabled"), kind="flag", default=False
    ),
    FieldRule(
        "hosted_voicemail_enabled", ("HostedVoicemailEnabled", "hosted_voicemail_enabled"), kind="flag", default=False
    ),
    FieldRule("department", ("Department", "department")),
    FieldRule("title", ("Title", "title", "JobTitle")),
    FieldRule("office", ("Office", "office", "OfficeLocation")),
    FieldRule("company", ("Company", "company", "Organization")),
    FieldRule("manager", ("Manager", "manager")),
    FieldRule("enabled", ("Enabled", "enabled"), kind="flag", default=True),
    FieldRule("registrar_pool", ("RegistrarPool", "registrar_pool", "Pool")),
    FieldRule("voice_policy", ("VoicePolicy", "voice_policy")),
    FieldRule("dial_plan", ("DialPlan", "dial_plan")),
    FieldRule("location_policy", ("LocationPolicy", "location_policy")),
    FieldRule("conferencing_policy", ("ConferencingPolicy", "conferencing_policy")),
    FieldRule("external_access_policy", ("ExternalAccessPolicy", "external_access_policy")),
    FieldRule("mobility_policy", ("MobilityPolicy", "mobility_policy")),
    FieldRule("client_policy", ("ClientPolicy", "client_policy")),
    FieldRule("pin_policy", ("PinPolicy", "pin_policy")),
    FieldRule("archiving_policy", ("ArchivingPolicy", "archiving_policy")),
    FieldRule("exchange_archiving_policy", ("ExchangeArchivingPolicy", "exchange_archiving_policy")),
    FieldRule("retention_policy", ("RetentionPolicy", "retention_policy")),
    FieldRule("call_via_work_policy", ("CallViaWorkPolicy", "call_via_work_policy")),
    FieldRule("client_version_policy", ("ClientVersionPolicy", "client_version_policy")),
    FieldRule(
        "hosted_voice_mail_enabled", ("HostedVoiceMailEnabled", "hosted_voice_mail_enabled"), kind="flag", default=False
    ),
    FieldRule("private_line", ("PrivateLine", "private_line")),
)

SIP_ADDRESS_KEYS = FIELD_RULES[0].keys


def has_sip_address(raw: dict[str, Any]) -> bool:
    """True when the row exposes a non-empty SIP address under a known key."""
    return any(raw.get(key) for key in SIP_ADDRESS_KEYS)


def parse_boolean(value: Any, default: bool = False) -> bool:
    """
    Coerce an export value to bool.

    Native bools pass through, strings are true when they read as
    true/yes/1/enabled, numbers are true when non-zero. Anything else
    (None, missing) gives ``default``.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    if isinstance(value, (int, float)):
        return value != 0
    return default


def extract_phone_number(line_uri: str | None) -> str | None:
    """
    Pull a dialable number out of a line URI.

    ``tel:+1 (555) 123-4567;ext=89`` gives ``+15551234567``. Without a
    ``tel:`` scheme, the first run of 10+ digit/punctuation characters is used.
    """
    if not line_uri:
        return None

    match = _TEL_URI_RE.search(line_uri) or _BARE_NUMBER_RE.search(line_uri)
    if match is None:
        return None
    number = _NON_DIAL_CHARS_RE.sub("", match.group(1))
    return number or None


def _lookup(raw: dict[str, Any], rule: FieldRule) -> Any:
    # Empty strings count as absent; a JSON ``false`` does not.
    for key in rule.keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def normalize_record(raw: dict[str, Any]) -> CanonicalUserRecord:
    """Map a raw export row onto the canonical record."""
    values: dict[str, Any] = {}
    for rule in FIELD_RULES:
        value = _lookup(raw, rule)
        if rule.kind == "flag":
            values[rule.field] = parse_boolean(value, rule.default)
        elif value is None:
            values[rule.field] = rule.default
        else:
            values[rule.field] = value if isinstance(value, str) else str(value)

    values["phone_number"] = extract_phone_number(values["line_uri"])
    return CanonicalUserRecord(**values)
