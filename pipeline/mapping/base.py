"""
Base class for raw → canonical entity mappers
"""

from typing import Any, Dict, Optional, Sequence, Type
from datetime import datetime
from pydantic import ValidationError
from pipeline.mapping.fields import Field, is_blank, resolve
from schemas.canonical import CanonicalRecord
from core.exceptions import MappingError
import logging

logger = logging.getLogger(__name__)


class EntityMapper:
    """
    Map one raw source record to one validated canonical record.

    Subclasses declare:
    - entity_type: registry name, used in logs and errors
    - key: the Field resolving external_key
    - fields: the remaining canonical columns
    - schema: pydantic model validating the result
    - url_path: deep-link section in the Karbon web app (optional)

    Mapping is pure: no I/O, no clock reads beyond the synced_at default.
    """

    entity_type: str = ""
    key: Field
    fields: Sequence[Field] = ()
    schema: Type[CanonicalRecord] = CanonicalRecord
    url_path: Optional[str] = None
    url_key: Optional[Field] = None  # when the deep link is not the external_key

    def __init__(self, app_url: Optional[str] = None):
        self.app_url = app_url.rstrip("/") if app_url else None

    def map(
        self,
        record: Dict[str, Any],
        synced_at: Optional[datetime] = None
    ) -> Optional[CanonicalRecord]:
        """
        Map a raw record.

        Returns:
            Validated canonical record, or None when the record has no
            usable identity

        Raises:
            MappingError: when the resolved values fail validation
        """
        if not isinstance(record, dict):
            return None

        external_key = self.key.resolve(record)
        if is_blank(external_key):
            return None

        values = resolve(self.fields, record)
        values["external_key"] = external_key
        values["karbon_url"] = self.build_url(record, external_key)

        stamp = synced_at or datetime.utcnow()
        values["last_synced_at"] = stamp
        values["updated_at"] = stamp

        try:
            return self.schema(**values)
        except ValidationError as e:
            raise MappingError(
                f"Invalid {self.entity_type} record {external_key}",
                context={
                    "entity_type": self.entity_type,
                    "external_key": str(external_key),
                    "field_errors": [
                        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                        for err in e.errors()
                    ]
                },
                original_exception=e
            )

    def build_url(self, record: Dict[str, Any], external_key: Any) -> Optional[str]:
        """Deep link into the Karbon web app, when a tenant URL is configured"""
        if not self.app_url or not self.url_path:
            return None
        target = self.url_key.resolve(record) if self.url_key else external_key
        if is_blank(target):
            return None
        return f"{self.app_url}/{self.url_path}/{target}"
