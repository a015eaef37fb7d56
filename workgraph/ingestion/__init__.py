"""Ingestion package: property resolution, typed extraction and record normalization.

Pure and synchronous. No network calls and no cache access.
"""

from .resolver import PropertyResolver
from .extractor import ValueExtractor
from .transformer import RecordTransformer

__all__ = ["PropertyResolver", "ValueExtractor", "RecordTransformer"]
