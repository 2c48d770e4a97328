"""
Record transformation pipeline for the directory user export.

- default_if_blank: fallback for absent/empty/whitespace values
- normalize_rank: free-text rank -> fixed abbreviation (first rule wins)
- normalize_org_path: 10 numbered org-unit slots -> one display string
- sanitize_handle: strip the URI scheme and disallowed characters
- filter_excluded: drop accounts matching caller-supplied regex fragments
- build_record / build_records: raw directory entries -> NormalizedRecord
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Pattern, Sequence

from .errors import SkipPatternError
from .rules import DEFAULT_RULES, NormalizationRules
from .schema import DEFAULT_ATTRIBUTES, ORG_UNIT_SLOTS, NormalizedRecord

LOGGER = logging.getLogger(__name__)

RawUserRecord = Mapping[str, object]

_OU_STRIP_CHARS = re.compile(r'[;,"]')
_WHITESPACE_RUN = re.compile(r"\s+")
# \w minus underscore, plus "@" and "."
_HANDLE_DISALLOWED = re.compile(r"[^\w@.]|_")


def _text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return _text(value[0]) if value else ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def default_if_blank(value: object, fallback: str = "") -> str:
    """Return ``value`` unchanged unless it is absent, empty or whitespace only."""

    text = _text(value)
    if not text.strip():
        return fallback
    return text


def normalize_rank(rank: object, rules: NormalizationRules = DEFAULT_RULES) -> str:
    """
    Map a free-text rank to its abbreviation.

    A leading honorific token ("r. ") is dropped before matching and
    re-added to every abbreviation outside the civilian track. A leading
    civilian marker ("c.") is kept in front of the result.
    """

    text = default_if_blank(rank).strip()
    if not text:
        return ""

    text = re.sub(rf"^{re.escape(rules.honorific_token)}\s+", "", text)
    civilian = re.match(rf"^{re.escape(rules.civilian_marker)}\s*", text, re.IGNORECASE) is not None

    for rule in rules.rank_rules:
        if not rule.pattern.match(text):
            continue
        result = rule.short
        if result not in rules.civilian_abbreviations:
            result = f"{rules.restoration_marker}{result}"
        if civilian:
            result = f"{rules.civilian_marker} {result}"
        return result

    return text.strip()


def clean_org_unit(value: str, rules: NormalizationRules = DEFAULT_RULES) -> str:
    cleaned = _OU_STRIP_CHARS.sub("", value)
    cleaned = _WHITESPACE_RUN.sub(" ", cleaned)
    for pattern, replacement in rules.ou_replacements:
        cleaned = pattern.sub(lambda _m, r=replacement: r, cleaned)
    return cleaned.strip()


def normalize_org_path(slots: Sequence[object], rules: NormalizationRules = DEFAULT_RULES) -> str:
    """Join the non-blank, non-noise org-unit slots in slot order with ", "."""

    parts: List[str] = []
    for value in slots:
        text = default_if_blank(value)
        if not text:
            continue
        if text in rules.ou_removals:
            continue
        parts.append(clean_org_unit(text, rules))
    return ", ".join(parts)


def sanitize_handle(handle: object, rules: NormalizationRules = DEFAULT_RULES) -> str:
    text = default_if_blank(handle)
    if not text:
        return ""
    if text.startswith(rules.handle_scheme):
        text = text[len(rules.handle_scheme):]
    return _HANDLE_DISALLOWED.sub("", text).strip()


def compile_skip_pattern(patterns: Iterable[str] | None) -> Optional[Pattern[str]]:
    """
    Compile skip-user fragments into one case-insensitive alternation.

    Fragments are regular expressions, not literals. Returns ``None`` when no
    fragments are given; raises SkipPatternError if they do not compile.
    """

    fragments = [str(p) for p in (patterns or []) if str(p)]
    if not fragments:
        return None
    try:
        compiled = re.compile("|".join(fragments), re.IGNORECASE)
    except re.error as exc:
        raise SkipPatternError(fragments, str(exc)) from exc
    LOGGER.debug("Skip-user pattern: %s", compiled.pattern)
    return compiled


def filter_excluded(
    records: Iterable[RawUserRecord],
    skip: Optional[Pattern[str]],
    attributes: Mapping[str, str] = DEFAULT_ATTRIBUTES,
) -> List[RawUserRecord]:
    """Drop records whose account identifier matches ``skip`` anywhere."""

    records = list(records)
    if skip is None:
        return records

    account_attr = attributes["AccountId"]
    kept: List[RawUserRecord] = []
    for record in records:
        account = _text(record.get(account_attr))
        if skip.search(account):
            LOGGER.debug("Skipping account %s", account)
            continue
        kept.append(record)
    return kept


def build_record(
    raw: RawUserRecord,
    rules: NormalizationRules = DEFAULT_RULES,
    attributes: Mapping[str, str] = DEFAULT_ATTRIBUTES,
) -> NormalizedRecord:
    """Build one NormalizedRecord; missing or odd-shaped fields default to empty."""

    def field(name: str) -> object:
        return raw.get(attributes[name])

    rank = normalize_rank(field("Rank"), rules)
    display_name = f"{default_if_blank(field('DisplayName'))} {rank}".strip()

    return NormalizedRecord(
        AccountId=default_if_blank(field("AccountId")),
        DisplayName=display_name,
        Mobile=default_if_blank(field("Mobile")),
        TelephoneNumber=default_if_blank(field("TelephoneNumber")),
        Mail=default_if_blank(field("Mail")),
        Description=default_if_blank(field("Description")).lower(),
        Handle=sanitize_handle(field("Handle"), rules),
        OrgPath=normalize_org_path([field(slot) for slot in ORG_UNIT_SLOTS], rules),
        IsLeader=_text(field("Leader")) == rules.leader_token,
        IsHidden=False,
    )


def build_records(
    raws: Iterable[RawUserRecord],
    rules: NormalizationRules = DEFAULT_RULES,
    attributes: Mapping[str, str] = DEFAULT_ATTRIBUTES,
) -> List[NormalizedRecord]:
    return [build_record(raw, rules, attributes) for raw in raws]


@dataclass
class ExportReport:
    fetched: int
    excluded: int
    exported: int
    output_path: Optional[Path]
