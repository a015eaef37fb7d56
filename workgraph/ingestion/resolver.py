"""
PropertyResolver: locate a logical field inside an arbitrarily named property bag.

Search order (first match wins):
1. Exact key
2. Case-insensitive key
3. Case-insensitive match on each alias, in alias order
4. First entry of `fallback_kind`, when given
5. For "parent" (or fallback_kind == "relation"): first relation entry of any name

All steps iterate the bag in its own order, so resolution is deterministic.
"""
import logging
from typing import Dict, List, Mapping, Optional

from workgraph.schemas.properties import PropertyKind, PropertyValue

logger = logging.getLogger(__name__)


class PropertyResolver:
    """Fuzzy property lookup backed by an alias table."""

    def __init__(self, aliases: Optional[Mapping[str, List[str]]] = None, strict_relation_fallback: bool = False):
        """
        Args:
            aliases: logical/physical name -> ordered candidate names
            strict_relation_fallback: refuse to guess when the bag has more
                than one relation field and none matched by name
        """
        self.aliases: Dict[str, List[str]] = {}
        self.strict_relation_fallback = strict_relation_fallback
        self.set_aliases(aliases or {})

    def set_aliases(self, aliases: Mapping[str, List[str]]) -> None:
        # Keyed case-insensitively; alias order is preserved
        self.aliases = {str(k).lower(): list(v) for k, v in aliases.items()}

    def aliases_for(self, name: str) -> List[str]:
        return self.aliases.get(name.lower(), [])

    def find(
        self,
        bag: Mapping[str, PropertyValue],
        name: str,
        fallback_kind: Optional[str] = None,
    ) -> Optional[PropertyValue]:
        if not bag or not name:
            return None

        # 1. Exact
        if name in bag:
            return bag[name]

        # 2. Case-insensitive
        lowered = name.lower()
        for key, value in bag.items():
            if key.lower() == lowered:
                return value

        # 3. Aliases
        for alias in self.aliases_for(name):
            lowered_alias = alias.lower()
            for key, value in bag.items():
                if key.lower() == lowered_alias:
                    return value

        wants_relation = fallback_kind == PropertyKind.RELATION.value or lowered == "parent"

        # 4. By kind
        if fallback_kind and not (wants_relation and fallback_kind == PropertyKind.RELATION.value):
            for value in bag.values():
                if value.type == fallback_kind:
                    return value

        # 4/5. Any relation
        if wants_relation:
            return self._any_relation(bag, name)

        return None

    def _any_relation(self, bag: Mapping[str, PropertyValue], name: str) -> Optional[PropertyValue]:
        relations = [(key, value) for key, value in bag.items() if value.type == PropertyKind.RELATION.value]
        if not relations:
            return None

        if len(relations) > 1:
            names = [key for key, _ in relations]
            if self.strict_relation_fallback:
                logger.warning(
                    f"PropertyResolver: '{name}' not found and {len(relations)} relation fields "
                    f"are present {names}; configure an explicit mapping"
                )
                return None
            logger.warning(f"PropertyResolver: '{name}' ambiguous, using first relation field '{names[0]}' of {names}")

        return relations[0][1]

    @staticmethod
    def has_value(prop: PropertyValue) -> bool:
        """True when the property carries a meaningful value."""
        kind = prop.type
        if kind == PropertyKind.SELECT.value:
            return prop.select is not None
        if kind == PropertyKind.STATUS.value:
            return prop.status is not None
        if kind == PropertyKind.RELATION.value:
            return len(prop.relation) > 0
        if kind == PropertyKind.PEOPLE.value:
            return len(prop.people) > 0
        if kind == PropertyKind.NUMBER.value:
            return prop.number is not None
        if kind == PropertyKind.DATE.value:
            return prop.date is not None
        return True
