from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List, Mapping, Sequence


@dataclass(frozen=True)
class NormalizedRecord:
    """One exported user row. Every field is a plain string or bool."""

    AccountId: str
    DisplayName: str
    Mobile: str
    TelephoneNumber: str
    Mail: str
    Description: str
    Handle: str
    OrgPath: str
    IsLeader: bool
    IsHidden: bool = False

    def as_row(self) -> Dict[str, object]:
        return asdict(self)


OUTPUT_COLUMNS: Sequence[str] = (
    "AccountId",
    "DisplayName",
    "Mobile",
    "TelephoneNumber",
    "Mail",
    "Description",
    "Handle",
    "OrgPath",
    "IsLeader",
    "IsHidden",
)

ORG_UNIT_SLOTS: Sequence[str] = tuple(f"OrgUnit{i}" for i in range(1, 11))

# canonical field -> directory attribute name
BASE_ATTRIBUTES: Mapping[str, str] = {
    "AccountId": "sAMAccountName",
    "DisplayName": "displayName",
    "Rank": "personalTitle",
    "Mobile": "mobile",
    "TelephoneNumber": "telephoneNumber",
    "Mail": "mail",
    "Description": "description",
    "Handle": "msRTCSIP-PrimaryUserAddress",
    "Leader": "extensionAttribute1",
}

ORG_UNIT_ATTRIBUTES: Mapping[str, str] = {
    slot: f"extensionAttribute{10 + i}" for i, slot in enumerate(ORG_UNIT_SLOTS, start=1)
}


def merge_attribute_map(
    overrides: Mapping[str, str] | None,
    base: Mapping[str, str] | None = None,
) -> Dict[str, str]:
    """
    Merge attribute-name overrides into the default map.

    Keys are canonical field names (``AccountId``, ``Rank``, ``OrgUnit3``...).
    Unknown keys are rejected so a typo cannot silently drop a column.
    """

    mapping: Dict[str, str] = dict(base or {**BASE_ATTRIBUTES, **ORG_UNIT_ATTRIBUTES})
    for key, value in (overrides or {}).items():
        key_str = str(key)
        if key_str not in mapping:
            raise KeyError(key_str)
        mapping[key_str] = str(value)
    return mapping


def query_attributes(mapping: Mapping[str, str]) -> List[str]:
    """Directory attribute names to request, in a stable order without duplicates."""

    ordered: List[str] = []
    for attr in mapping.values():
        if attr not in ordered:
            ordered.append(attr)
    return ordered


DEFAULT_ATTRIBUTES: Dict[str, str] = merge_attribute_map(None)
