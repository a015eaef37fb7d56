"""
Providers package: transport adapters for workspace sources.

The orchestrator only sees the SourceProvider contract; which API sits behind
it is chosen by name.
"""
import logging
from typing import Any, Dict, Optional, Type

from workgraph.fetching.providers.base import SourcePage, SourceProvider
from workgraph.fetching.providers.notion import NotionProvider

logger = logging.getLogger(__name__)


PROVIDER_REGISTRY: Dict[str, Type[SourceProvider]] = {
    "notion": NotionProvider,
}


def get_provider(provider_name: str, **kwargs: Any) -> Optional[SourceProvider]:
    """
    Factory to get a provider instance by name.

    Args:
        provider_name: registry key, e.g. 'notion'
        **kwargs: passed to the provider constructor

    Returns:
        SourceProvider instance or None if not recognized
    """
    provider_class = PROVIDER_REGISTRY.get(provider_name.lower())
    if not provider_class:
        logger.error(f"Unknown provider: {provider_name}")
        return None

    logger.debug(f"Creating {provider_name} provider")
    return provider_class(**kwargs)


__all__ = [
    "SourcePage",
    "SourceProvider",
    "NotionProvider",
    "PROVIDER_REGISTRY",
    "get_provider",
]
