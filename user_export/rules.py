"""
Fixed text-normalization tables for the user export.

The rank table is an ordered list: the first matching rule wins, so entries
must not be re-sorted or turned into a dict.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Mapping, Pattern, Sequence, Tuple

HONORIFIC_TOKEN = "r."
RESTORATION_MARKER = "r. "
CIVILIAN_MARKER = "c."
CIVILIAN_ABBREVIATIONS: FrozenSet[str] = frozenset({"ria.", "kt."})
HANDLE_SCHEME = "sip:"
LEADER_TOKEN = "TRUE"

# optional civilian and rank markers in front of the rank word; the civilian
# marker is detected with the same expression
CIVILIAN_PREFIX = rf"{re.escape(CIVILIAN_MARKER)}\s*"
_RANK_PREFIX = rf"^(?:{CIVILIAN_PREFIX})?(?:{re.escape(HONORIFIC_TOKEN)}\s*)?"


@dataclass(frozen=True)
class RankRule:
    pattern: Pattern[str]
    short: str

    @classmethod
    def from_words(cls, words: Sequence[str], short: str) -> "RankRule":
        alternatives = "|".join(re.escape(w) for w in words)
        return cls(re.compile(rf"{_RANK_PREFIX}(?:{alternatives})\b", re.IGNORECASE), short)


# (accepted spellings, abbreviation); full names are listed before their own
# abbreviations so the longest spelling is consumed first.
RANK_SPELLINGS: Sequence[Tuple[Sequence[str], str]] = (
    (("vezérezredes", "vezds"), "vezds."),
    (("altábornagy", "altbgy"), "altbgy."),
    (("vezérőrnagy", "vőrgy"), "vőrgy."),
    (("dandártábornok", "dandtbk"), "dandtbk."),
    (("alezredes", "alez", "alezr"), "alezr."),
    (("ezredes", "ezr"), "ezr."),
    (("őrnagy", "őrgy"), "őrgy."),
    (("százados", "szds"), "szds."),
    (("főhadnagy", "fhdgy"), "fhdgy."),
    (("hadnagy", "hdgy"), "hdgy."),
    (("főtörzszászlós", "ftzls"), "ftzls."),
    (("törzszászlós", "tzls"), "tzls."),
    (("zászlós", "zls"), "zls."),
    (("főtörzsőrmester", "ftőrm"), "ftőrm."),
    (("törzsőrmester", "tőrm"), "tőrm."),
    (("őrmester", "őrm"), "őrm."),
    (("szakaszvezető", "szkv"), "szkv."),
    (("tizedes", "tiz"), "tiz."),
    (("őrvezető", "őrv"), "őrv."),
    (("közlegény", "közl"), "közl."),
    (("rendvédelmi igazgatási alkalmazott", "ria", "ra"), "ria."),
    (("kormánytisztviselő", "kt"), "kt."),
)

DEFAULT_RANK_RULES: Tuple[RankRule, ...] = tuple(
    RankRule.from_words(words, short) for words, short in RANK_SPELLINGS
)

# exact org-unit values that carry no information for the export
DEFAULT_OU_REMOVALS: FrozenSet[str] = frozenset(
    {
        "BRFK+19VMRFK",
        "ORFK",
        "ORSZÁGOS RENDŐR-FŐKAPITÁNYSÁG",
    }
)

DEFAULT_OU_REPLACEMENTS: Sequence[Tuple[str, str]] = (
    (r"\s*\(FŐOSZTÁLY JOGÁLLÁSÚ\)", ""),
    (r"\s*\(OSZTÁLY JOGÁLLÁSÚ\)", ""),
    (r"\s*\(ALOSZTÁLY JOGÁLLÁSÚ\)", ""),
    (r"BUDAPESTI RENDŐR-FŐKAPITÁNYSÁG", "BRFK"),
)


def compile_replacements(pairs: Iterable[Tuple[str, str]]) -> Tuple[Tuple[Pattern[str], str], ...]:
    """Compile (regex, literal) pairs, keeping their order."""

    return tuple((re.compile(pattern), str(replacement)) for pattern, replacement in pairs)


@dataclass(frozen=True)
class NormalizationRules:
    """Immutable rule set handed to the normalizers for one export run."""

    rank_rules: Tuple[RankRule, ...] = DEFAULT_RANK_RULES
    ou_removals: FrozenSet[str] = DEFAULT_OU_REMOVALS
    ou_replacements: Tuple[Tuple[Pattern[str], str], ...] = compile_replacements(DEFAULT_OU_REPLACEMENTS)
    honorific_token: str = HONORIFIC_TOKEN
    restoration_marker: str = RESTORATION_MARKER
    civilian_marker: str = CIVILIAN_MARKER
    civilian_abbreviations: FrozenSet[str] = CIVILIAN_ABBREVIATIONS
    handle_scheme: str = HANDLE_SCHEME
    leader_token: str = LEADER_TOKEN


def parse_replacement_entries(entries: Iterable[Mapping[str, object]]) -> List[Tuple[str, str]]:
    """Turn ``[{pattern: ..., replacement: ...}]`` config entries into pairs."""

    pairs: List[Tuple[str, str]] = []
    for entry in entries:
        if "pattern" not in entry:
            raise ValueError(f"Replacement entry without 'pattern': {entry}")
        pairs.append((str(entry["pattern"]), str(entry.get("replacement", "") or "")))
    return pairs


def build_rules(
    ou_removals: Iterable[str] | None = None,
    ou_replacements: Iterable[Tuple[str, str]] | None = None,
) -> NormalizationRules:
    """Build the rule set once at start-up; ``None`` keeps the built-in tables."""

    removals = frozenset(str(v) for v in ou_removals) if ou_removals is not None else DEFAULT_OU_REMOVALS
    replacements = compile_replacements(
        ou_replacements if ou_replacements is not None else DEFAULT_OU_REPLACEMENTS
    )
    return NormalizationRules(ou_removals=removals, ou_replacements=replacements)


DEFAULT_RULES: NormalizationRules = build_rules()
