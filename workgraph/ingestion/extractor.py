"""
ValueExtractor: typed getters over a property bag.

Every getter resolves its field through PropertyResolver and then checks the
kind tag before reading the payload, so a field of the wrong kind reads as
empty instead of raising. All getters are safe on missing or malformed data.
"""
import logging
from typing import Dict, List, Mapping, Optional

from workgraph.core.identifiers import normalize_uuid
from workgraph.ingestion.resolver import PropertyResolver
from workgraph.schemas.items import DEFAULT_STATUS, Owner, Priority
from workgraph.schemas.properties import PropertyKind, PropertyValue, TextRun

logger = logging.getLogger(__name__)


PRIORITY_MAP: Dict[str, Priority] = {
    "p0": "P0",
    "p1": "P1",
    "p2": "P2",
    "p3": "P3",
    "p4": "P3",
    "critical": "P0",
    "highest": "P0",
    "urgent": "P0",
    "blocker": "P0",
    "high": "P1",
    "important": "P1",
    "medium": "P2",
    "normal": "P2",
    "moderate": "P2",
    "low": "P3",
    "minor": "P3",
    "trivial": "P3",
    "lowest": "P3",
}

# Checked in order after an exact lookup misses
PRIORITY_KEYWORDS = (
    (("critical", "urgent"), "P0"),
    (("high",), "P1"),
    (("medium", "normal"), "P2"),
    (("low",), "P3"),
)


def _join_runs(runs: List[TextRun]) -> str:
    return "".join(run.plain_text for run in runs if isinstance(run, TextRun))


class ValueExtractor:
    """Kind-checked value access built on PropertyResolver."""

    def __init__(self, resolver: Optional[PropertyResolver] = None):
        self.resolver = resolver or PropertyResolver()

    def extract_title(self, bag: Mapping[str, PropertyValue], name: str) -> str:
        """
        Concatenated text of the mapped title/rich_text field.

        Falls back to the first non-empty title-kind field anywhere in the bag.
        Returns "" when nothing is found.
        """
        mapped = self.resolver.find(bag, name)
        if mapped is not None:
            if mapped.type == PropertyKind.TITLE.value:
                return _join_runs(mapped.title)
            if mapped.type == PropertyKind.RICH_TEXT.value:
                return _join_runs(mapped.rich_text)

        for value in bag.values():
            if value.type == PropertyKind.TITLE.value and value.title:
                return _join_runs(value.title)

        return ""

    def extract_select(self, bag: Mapping[str, PropertyValue], name: str) -> Optional[str]:
        """Label of a select or status field (the upstream uses both)."""
        prop = self.resolver.find(bag, name)
        if prop is None:
            return None
        if prop.type == PropertyKind.SELECT.value and prop.select is not None:
            return prop.select.name
        if prop.type == PropertyKind.STATUS.value and prop.status is not None:
            return prop.status.name
        return None

    def extract_status(self, bag: Mapping[str, PropertyValue], name: str) -> Optional[str]:
        return self.extract_select(bag, name)

    def extract_multi_select(self, bag: Mapping[str, PropertyValue], name: str) -> List[str]:
        prop = self.resolver.find(bag, name)
        if prop is None or prop.type != PropertyKind.MULTI_SELECT.value:
            return []
        return [option.name for option in prop.multi_select]

    def extract_number(self, bag: Mapping[str, PropertyValue], name: str) -> Optional[float]:
        prop = self.resolver.find(bag, name)
        if prop is None or prop.type != PropertyKind.NUMBER.value:
            return None
        return prop.number

    def extract_date(self, bag: Mapping[str, PropertyValue], name: str) -> Optional[str]:
        """Start of the date range, as delivered (ISO string)."""
        prop = self.resolver.find(bag, name)
        if prop is None or prop.type != PropertyKind.DATE.value or prop.date is None:
            return None
        return prop.date.start

    def extract_people(self, bag: Mapping[str, PropertyValue], name: str) -> List[Owner]:
        prop = self.resolver.find(bag, name)
        if prop is None or prop.type != PropertyKind.PEOPLE.value:
            return []

        people = []
        for person in prop.people:
            if not person.id:
                continue
            people.append(Owner(
                id=person.id,
                name=person.name if person.name else "Unknown",
                email=person.person.email if person.person else None,
                avatar=person.avatar_url,
            ))
        return people

    def extract_relation(self, bag: Mapping[str, PropertyValue], name: str) -> List[str]:
        """Related record ids, normalized so both id spellings match."""
        prop = self.resolver.find(bag, name, PropertyKind.RELATION.value)
        if prop is None or prop.type != PropertyKind.RELATION.value:
            return []

        ids = []
        for ref in prop.relation:
            normalized = normalize_uuid(ref.id)
            if normalized:
                ids.append(normalized)
        return ids

    @staticmethod
    def map_status(raw: Optional[str]) -> str:
        """Raw status label, trimmed. Not canonicalized."""
        if raw is None:
            return DEFAULT_STATUS
        return raw.strip() or DEFAULT_STATUS

    @staticmethod
    def map_priority(raw: Optional[str]) -> Optional[Priority]:
        """
        Map a free-form priority label onto P0..P3.

        Exact names first ("P4" -> "P3", "Blocker" -> "P0"), then keyword
        containment ("Critical Bug" -> "P0"). Unrecognized labels map to None.
        """
        if not raw:
            return None

        normalized = raw.lower().strip()
        if normalized in PRIORITY_MAP:
            return PRIORITY_MAP[normalized]

        for keywords, priority in PRIORITY_KEYWORDS:
            if any(keyword in normalized for keyword in keywords):
                return priority

        return None
