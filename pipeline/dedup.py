"""
Identity deduplication of raw records before mapping
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set
from pipeline.mapping.fields import Field, is_blank
import logging

logger = logging.getLogger(__name__)


@dataclass
class DedupResult:
    records: List[Dict[str, Any]] = field(default_factory=list)
    dropped: int = 0


class IdentityDeduplicator:
    """
    Collapse raw records that share a logical identity, keeping the first.

    A later record is dropped when its primary key matches a kept record's
    key, or when its normalized (trimmed, lower-cased) secondary signal,
    typically an email address, matches one already kept. Records with no
    primary key pass through untouched; the mapper decides whether they
    have a usable identity.
    """

    def __init__(self, key: Field, secondary: Optional[Field] = None):
        self.key = key
        self.secondary = secondary

    @staticmethod
    def _normalize(value: Any) -> Optional[str]:
        if is_blank(value):
            return None
        return str(value).strip().lower()

    def deduplicate(self, records: List[Dict[str, Any]], label: str = "") -> DedupResult:
        result = DedupResult()
        seen_keys: Set[str] = set()
        seen_secondary: Set[str] = set()

        for record in records:
            if not isinstance(record, dict):
                result.records.append(record)
                continue

            primary = self.key.resolve(record)
            if is_blank(primary):
                result.records.append(record)
                continue
            primary = str(primary).strip()

            secondary = self._normalize(self.secondary.resolve(record)) if self.secondary else None

            if primary in seen_keys or (secondary and secondary in seen_secondary):
                result.dropped += 1
                logger.debug(f"{label}: dropping duplicate identity {primary}")
                continue

            seen_keys.add(primary)
            if secondary:
                seen_secondary.add(secondary)
            result.records.append(record)

        if result.dropped:
            logger.info(f"{label}: dropped {result.dropped} duplicate records")
        return result
