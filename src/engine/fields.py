"""Strict parsers for JSON-encoded fields stored inside relational records.

Strategy and multiplier rows carry lists and localized text as JSON
strings (``secondary_risks``, ``applicable_risks``, ``applicable_hazards``,
``name``, ``sme_title``). Over the life of the catalog those columns have
been written in several shapes:

  - a JSON array:            '["hurricane", "flooding"]'
  - a bare JSON string:      '"hurricane"'
  - legacy delimited text:   'hurricane, flooding' / 'hurricane;flooding'
  - an already-decoded list (rows produced in-process)

Each field type has one ``_decode_*`` function that either returns a typed
value or raises MalformedRecordError, and one public ``parse_*`` wrapper that
logs the failure and degrades to a well-defined empty value. Callers never
see an exception from a malformed field.
"""

import json
import logging
import re

from src.engine.canonical import canonicalize_all

logger = logging.getLogger(__name__)

SUPPORTED_LOCALES: tuple[str, ...] = ("en", "es", "fr")
"""Locales carried by localized name / title JSON objects."""

_LEGACY_DELIMITERS = re.compile(r"[,;|\n]")
_JSON_OPENERS = ("[", "{", '"')


class MalformedRecordError(ValueError):
    """A stored JSON field could not be decoded into its expected shape.

    Attributes:
        field: Name of the offending field.
        raw: The undecodable value (truncated in the message).
    """

    def __init__(self, field: str, raw, reason: str):
        self.field = field
        self.raw = raw
        super().__init__(f"Malformed '{field}' ({reason}): {str(raw)[:80]!r}")


def _decode_string_list(raw, field: str) -> list[str]:
    """Decode a list-of-strings field in any of its historical encodings."""
    if raw is None:
        return []
    if isinstance(raw, (list, tuple, set, frozenset)):
        items = list(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            return []
        if text.startswith(_JSON_OPENERS):
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError as exc:
                raise MalformedRecordError(field, raw, f"invalid JSON: {exc.msg}") from exc
            if isinstance(decoded, str):
                items = [decoded]
            elif isinstance(decoded, list):
                items = decoded
            else:
                raise MalformedRecordError(
                    field, raw, f"expected list or string, got {type(decoded).__name__}"
                )
        else:
            items = _LEGACY_DELIMITERS.split(text)
    else:
        raise MalformedRecordError(field, raw, f"unsupported type {type(raw).__name__}")

    result = []
    for item in items:
        if not isinstance(item, str):
            logger.debug("Dropping non-string item %r from '%s'", item, field)
            continue
        item = item.strip()
        if item:
            result.append(item)
    return result


def _decode_localized(raw, field: str) -> dict[str, str]:
    """Decode a localized-text field into a locale -> text mapping."""
    if raw is None:
        return {}
    if isinstance(raw, dict):
        decoded = raw
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            return {}
        if not text.startswith("{"):
            # Pre-translation rows stored plain English text
            return {"en": text}
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedRecordError(field, raw, f"invalid JSON: {exc.msg}") from exc
        if not isinstance(decoded, dict):
            raise MalformedRecordError(field, raw, "expected JSON object")
    else:
        raise MalformedRecordError(field, raw, f"unsupported type {type(raw).__name__}")

    return {
        str(locale): value.strip()
        for locale, value in decoded.items()
        if isinstance(value, str) and value.strip()
    }


def parse_string_list(raw, field: str, record_id: str = "?") -> list[str]:
    """Parse a JSON-encoded list of strings; malformed input yields ``[]``."""
    try:
        return _decode_string_list(raw, field)
    except MalformedRecordError as exc:
        logger.warning("Record %s: %s -- treating as empty", record_id, exc)
        return []


def parse_risk_list(raw, field: str, record_id: str = "?") -> list[str]:
    """Parse a JSON-encoded hazard list into distinct canonical hazard ids.

    Duplicates (including different spellings of the same hazard) are
    collapsed, keeping first-occurrence order.
    """
    return canonicalize_all(parse_string_list(raw, field, record_id))


def parse_localized(raw, field: str, record_id: str = "?") -> dict[str, str]:
    """Parse a localized-text field; malformed input yields ``{}``."""
    try:
        return _decode_localized(raw, field)
    except MalformedRecordError as exc:
        logger.warning("Record %s: %s -- treating as empty", record_id, exc)
        return {}


def localized_text(values: dict[str, str], locale: str = "en", fallback: str = "") -> str:
    """Pick the text for ``locale``, falling back to English, then any locale."""
    if locale in values:
        return values[locale]
    if "en" in values:
        return values["en"]
    for locale_key in SUPPORTED_LOCALES:
        if locale_key in values:
            return values[locale_key]
    return next(iter(values.values()), fallback)
