"""
RecordTransformer: ExternalRecord + type tag -> NormalizedItem.

Resolves the 8 logical fields through ValueExtractor using the effective
mapping (defaults with per-source overrides on top). The first record seen for
each type tag emits a one-time debug snapshot of its property names and kinds;
the snapshot set is owned by the transformer instance and only reset when the
mapping configuration changes.
"""
import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Union

from workgraph.config.mappings import DEFAULT_ALIASES, MappingConfig
from workgraph.core.identifiers import normalize_uuid
from workgraph.ingestion.extractor import ValueExtractor
from workgraph.ingestion.resolver import PropertyResolver
from workgraph.schemas.items import NormalizedItem
from workgraph.schemas.properties import ExternalRecord, PropertyValue

logger = logging.getLogger(__name__)

RecordInput = Union[ExternalRecord, Dict[str, Any]]


class RecordTransformer:
    """Normalizes external records into items, one resolver per session."""

    def __init__(
        self,
        default_mappings: Optional[MappingConfig] = None,
        aliases: Optional[Mapping[str, List[str]]] = None,
        strict_relation_fallback: bool = False,
    ):
        self.default_mappings = default_mappings or MappingConfig()
        self.resolver = PropertyResolver(
            aliases if aliases is not None else DEFAULT_ALIASES,
            strict_relation_fallback=strict_relation_fallback,
        )
        self.extractor = ValueExtractor(self.resolver)

        self._logged_type_tags: Set[str] = set()
        # type tag -> lower-cased property name -> kind
        self._property_kinds: Dict[str, Dict[str, str]] = {}

    # ===== Configuration =====

    def set_mapping_config(
        self,
        default_mappings: MappingConfig,
        aliases: Optional[Mapping[str, List[str]]] = None,
    ) -> None:
        """Replace the default mapping (and optionally aliases); resets diagnostics."""
        self.default_mappings = default_mappings
        if aliases is not None:
            self.resolver.set_aliases(aliases)
        self.reset_diagnostics()
        logger.info("RecordTransformer: mapping config replaced, diagnostics reset")

    def reset_diagnostics(self) -> None:
        self._logged_type_tags.clear()

    @property
    def logged_type_tags(self) -> FrozenSet[str]:
        return frozenset(self._logged_type_tags)

    def property_kind(self, name: str, type_tag: Optional[str] = None) -> Optional[str]:
        """Kind last observed for a property name, optionally within one type tag."""
        lowered = name.lower()
        if type_tag is not None:
            return self._property_kinds.get(type_tag, {}).get(lowered)
        for kinds in self._property_kinds.values():
            if lowered in kinds:
                return kinds[lowered]
        return None

    # ===== Transformation =====

    def effective_mapping(
        self,
        mapping: Optional[MappingConfig] = None,
        overrides: Optional[Dict[str, str]] = None,
    ) -> MappingConfig:
        return (mapping or self.default_mappings).merged(overrides)

    def transform(
        self,
        record: RecordInput,
        type_tag: str,
        mapping: Optional[MappingConfig] = None,
        overrides: Optional[Dict[str, str]] = None,
    ) -> NormalizedItem:
        if not isinstance(record, ExternalRecord):
            record = ExternalRecord.from_raw(record)

        effective = self.effective_mapping(mapping, overrides)
        bag: Dict[str, PropertyValue] = record.properties or {}

        self._observe(type_tag, bag)

        ex = self.extractor
        title = ex.extract_title(bag, effective.title)
        status = ex.extract_status(bag, effective.status)
        priority = ex.extract_select(bag, effective.priority)
        progress = ex.extract_number(bag, effective.progress)
        due_date = ex.extract_date(bag, effective.due_date)
        people = ex.extract_people(bag, effective.owner)
        parents = ex.extract_relation(bag, effective.parent)
        tags = ex.extract_multi_select(bag, effective.tags)

        return NormalizedItem(
            id=normalize_uuid(record.id) or record.id,
            title=title or "Untitled",
            type=type_tag,
            status=ex.map_status(status),
            priority=ex.map_priority(priority),
            progress=progress,
            owner=people[0] if people else None,
            assignees=people,
            parent_id=parents[0] if parents else None,
            children=[],
            due_date=due_date,
            created_at=record.created_at,
            updated_at=record.updated_at,
            source_record_id=record.id,
            source_url=record.url,
            tags=tags,
        )

    def transform_batch(
        self,
        records: Iterable[RecordInput],
        type_tag: str,
        mapping: Optional[MappingConfig] = None,
        overrides: Optional[Dict[str, str]] = None,
    ) -> List[NormalizedItem]:
        """Transform every record that carries a property bag; others are skipped."""
        items = []
        skipped = 0
        for record in records:
            if not isinstance(record, ExternalRecord):
                try:
                    record = ExternalRecord.from_raw(record)
                except ValueError as e:
                    logger.warning(f"RecordTransformer: skipping unreadable {type_tag} record: {e}")
                    skipped += 1
                    continue
            if record.properties is None:
                skipped += 1
                continue
            items.append(self.transform(record, type_tag, mapping, overrides))

        if skipped:
            logger.debug(f"RecordTransformer: {skipped} {type_tag} records without properties skipped")
        return items

    def _observe(self, type_tag: str, bag: Mapping[str, PropertyValue]) -> None:
        kinds = self._property_kinds.setdefault(type_tag, {})
        for name, value in bag.items():
            kinds[name.lower()] = value.type

        if type_tag in self._logged_type_tags:
            return
        self._logged_type_tags.add(type_tag)

        snapshot = [
            f"{name} ({value.type}{', set' if self.resolver.has_value(value) else ''})"
            for name, value in bag.items()
        ]
        logger.debug(f"RecordTransformer: {type_tag.upper()} properties: {'; '.join(snapshot) or '<none>'}")
