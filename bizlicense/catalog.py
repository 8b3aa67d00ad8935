"""
Requirement catalog loading.

The catalog is read once at startup from a JSON store and never changes
afterwards. Loading either yields a fully validated catalog or raises
CatalogLoadError; there is no partial or empty fallback.
"""
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from bizlicense.errors import CatalogLoadError
from bizlicense.models import Range, RequirementRecord

_RECORDS_ADAPTER = TypeAdapter(List[RequirementRecord])


class Catalog:
    """
    Immutable, ordered collection of requirement records.

    A single instance is shared by every matching call for the lifetime of
    the process. Records keep the order they had in the store.
    """

    def __init__(self, records: Iterable[RequirementRecord], source: Optional[str] = None):
        self._records: Tuple[RequirementRecord, ...] = tuple(records)
        self._by_id: Dict[str, RequirementRecord] = {r.id: r for r in self._records}
        if len(self._by_id) != len(self._records):
            raise CatalogLoadError("Catalog records must have unique ids")
        self.source = source

    def __iter__(self) -> Iterator[RequirementRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"Catalog({len(self._records)} records, source={self.source!r})"

    @property
    def records(self) -> Tuple[RequirementRecord, ...]:
        return self._records

    @property
    def ids(self) -> List[str]:
        return [r.id for r in self._records]

    def get(self, requirement_id: str) -> Optional[RequirementRecord]:
        return self._by_id.get(requirement_id)


def dedupe_first_wins(records: Iterable[RequirementRecord]) -> List[RequirementRecord]:
    """
    Drop records whose id was already seen, keeping the first occurrence.

    Args:
        records: Records in store order.

    Returns:
        List[RequirementRecord]: Records with unique ids, store order preserved.
    """
    seen = set()
    unique = []
    for record in records:
        if record.id in seen:
            logger.warning(f"Duplicate requirement id '{record.id}' ignored, keeping first occurrence")
            continue
        seen.add(record.id)
        unique.append(record)
    return unique


def _check_bounds(record: RequirementRecord) -> None:
    for field_name in ("area_m2", "seats"):
        bounds: Optional[Range] = getattr(record.applies_if, field_name)
        if bounds is None:
            continue
        if bounds.min is not None and bounds.max is not None and bounds.min > bounds.max:
            raise CatalogLoadError(
                f"Requirement '{record.id}': {field_name}.min ({bounds.min}) "
                f"is greater than {field_name}.max ({bounds.max})"
            )


def parse_catalog(raw: Union[str, bytes], source: Optional[str] = None) -> Catalog:
    """
    Validate a serialized requirement list and build a Catalog.

    Validation is strict: bounds must be JSON numbers, flags must be JSON
    booleans and unknown predicate keys are rejected.

    Args:
        raw: JSON text holding a list of requirement records.
        source: Where the text came from, for error messages.

    Returns:
        Catalog: The validated catalog.

    Raises:
        CatalogLoadError: If the text is not a valid, non-empty requirement list.
    """
    where = source or "<catalog>"
    try:
        records = _RECORDS_ADAPTER.validate_json(raw, strict=True)
    except ValidationError as e:
        raise CatalogLoadError(f"Invalid requirement catalog {where}: {e}") from e

    if not records:
        raise CatalogLoadError(f"Requirement catalog {where} is empty")

    for record in records:
        _check_bounds(record)

    return Catalog(dedupe_first_wins(records), source=source)


def load_catalog(path: Union[str, Path]) -> Catalog:
    """
    Load the requirement catalog from a JSON file.

    Args:
        path: Location of the JSON store.

    Returns:
        Catalog: The loaded catalog.

    Raises:
        CatalogLoadError: If the file is missing, unreadable or invalid.
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise CatalogLoadError(f"Cannot read requirement catalog {path}: {e}") from e

    catalog = parse_catalog(raw, source=str(path))
    logger.info(f"📚 Loaded {len(catalog)} requirements from {path}")
    return catalog
