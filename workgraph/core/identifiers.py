"""
Record identifier normalization.

The upstream API returns the same record id with or without hyphens depending
on the endpoint. Every id that takes part in parent/child matching goes through
normalize_uuid so that both spellings compare equal.
"""
import re

_HEX32 = re.compile(r"[0-9a-f]{32}")


def normalize_uuid(raw_id: str) -> str:
    """
    Normalize a record id to the canonical 8-4-4-4-12 form.

    Hyphens are stripped and the value lowercased; if what remains is exactly
    32 hex characters the hyphens are re-inserted. Anything else is returned
    unchanged, so the function is idempotent.
    """
    if not isinstance(raw_id, str) or not raw_id:
        return ""

    clean = raw_id.replace("-", "").lower()
    if not _HEX32.fullmatch(clean):
        return raw_id

    return f"{clean[0:8]}-{clean[8:12]}-{clean[12:16]}-{clean[16:20]}-{clean[20:32]}"


def build_scope_key(source_ids) -> str:
    """Stable cache key for a set of sources: sorted ids joined by '|'."""
    return "|".join(sorted(source_ids))
