"""
Declarative field resolution for raw source records.

A Field names one canonical column and lists the places in a raw record
where its value may live, in order of precedence. Each candidate is either
a dotted path ("AccountingDetail.BirthDate") or a callable over the whole
record. The first candidate whose value is not blank after the transform
wins; if none yields, the field's default is used.

Blank means None, an empty/whitespace string, or an empty list/dict.
0 and False are real values.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

Candidate = Union[str, Callable[[Dict[str, Any]], Any]]

_FRACTION = re.compile(r"\.(\d+)")


def is_blank(value: Any) -> bool:
    """True for None, empty/whitespace strings and empty containers"""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def lookup(record: Any, path: str) -> Any:
    """
    Walk a dotted path through nested dicts.

    A list met along the way is stepped into through its first element,
    since the source sometimes wraps a single object in an array.
    """
    current = record
    for part in path.split("."):
        if isinstance(current, list):
            current = current[0] if current else None
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


@dataclass(frozen=True)
class Field:
    """One canonical column and its ordered raw-value candidates"""
    name: str
    candidates: Sequence[Candidate]
    transform: Optional[Callable[[Any], Any]] = None
    default: Any = None

    def resolve(self, record: Dict[str, Any]) -> Any:
        for candidate in self.candidates:
            value = candidate(record) if callable(candidate) else lookup(record, candidate)
            if is_blank(value):
                continue
            if self.transform is not None:
                value = self.transform(value)
            if not is_blank(value):
                return value
        return self.default


def resolve(fields: Sequence[Field], record: Dict[str, Any]) -> Dict[str, Any]:
    """Resolve every field of a mapping against one record"""
    return {f.name: f.resolve(record) for f in fields}


# ============================================================================
# Structured sub-objects
# ============================================================================

def as_list(value: Any) -> List[Any]:
    """Coerce a scalar, object or array into a list"""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def pick_labelled(
    items: Any,
    *labels: str,
    fallback: bool = False,
    label_key: str = "Label"
) -> Optional[Dict[str, Any]]:
    """
    Select the first object whose label matches, trying labels in order.

    With fallback=True the first object is returned when no label matches
    (used for primary fields such as the physical address).
    """
    candidates = [item for item in as_list(items) if isinstance(item, dict)]
    for label in labels:
        for item in candidates:
            if str(item.get(label_key) or "").lower() == label.lower():
                return item
    if fallback and candidates:
        return candidates[0]
    return None


def join_names(*parts: Any) -> Optional[str]:
    """Join non-blank name parts with single spaces"""
    words = [str(p).strip() for p in parts if not is_blank(p)]
    return " ".join(words) or None


def _scalar(value: Any) -> Any:
    # single-element arrays stand in for scalars in some payloads
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


# ============================================================================
# Transforms
# ============================================================================

def to_str(value: Any) -> Optional[str]:
    value = _scalar(value)
    if value is None or isinstance(value, dict):
        return None
    text = str(value).strip()
    return text or None


def to_int(value: Any) -> Optional[int]:
    value = _scalar(value)
    if isinstance(value, bool):
        return int(value)
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def to_float(value: Any) -> Optional[float]:
    value = _scalar(value)
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


_TRUE = {"true", "yes", "y", "1"}
_FALSE = {"false", "no", "n", "0"}


def to_bool(value: Any) -> Optional[bool]:
    value = _scalar(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
    return None


def to_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into a naive UTC datetime.

    Accepts a trailing "Z" and any number of fractional digits (the source
    emits seven; fromisoformat before 3.11 takes exactly three or six).
    """
    value = _scalar(value)
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip().replace("Z", "+00:00")
        text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_date(value: Any) -> Optional[date]:
    """Truncate a timestamp or date string to its calendar date"""
    value = _scalar(value)
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def to_list(value: Any) -> Optional[List[Any]]:
    items = as_list(value)
    return items or None


def to_dict(value: Any) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) and value else None


def within(low: int, high: int) -> Callable[[Any], Optional[int]]:
    """Transform accepting integers strictly between low and high"""
    def check(value: Any) -> Optional[int]:
        number = to_int(value)
        if number is not None and low < number < high:
            return number
        return None
    return check
