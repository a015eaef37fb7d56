"""
workgraph: ingestion pipeline for hierarchical workspace records.

Fetches paginated records from workspace sources, normalizes heterogeneous
property bags into NormalizedItems, links parent/child relations and serves the
result through a two-tier cache.
"""
__version__ = "0.4.0"
