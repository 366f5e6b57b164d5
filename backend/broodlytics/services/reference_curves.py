# broodlytics/services/reference_curves.py
from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, Iterable, Iterator, Mapping, NamedTuple, Optional, Tuple, Union

import structlog

from broodlytics.core.errors import InvalidInput, ReferenceLookupMiss
from broodlytics.schemas.growth import FlockContext, SexProfile
from broodlytics.utils.numeric import coerce_float, coerce_int

logger = structlog.get_logger("reference")

SENTINEL_AGE = -1

# Column spellings seen in the strain/age reference feeds.
_WEIGHT_ALIASES: Dict[str, Tuple[str, ...]] = {
    "mixed": ("mixed", "mixto", "Mixto", "peso_mixto"),
    "male": ("male", "machos", "Machos", "peso_machos"),
    "female": ("female", "hembras", "Hembras", "peso_hembras"),
}
_AGE_ALIASES: Tuple[str, ...] = ("age_days", "edad", "age")


@dataclass(frozen=True)
class ReferenceRow:
    age_days: int
    mixed: float = 0.0
    male: float = 0.0
    female: float = 0.0

    def weight_for(self, sex: SexProfile) -> float:
        if sex is SexProfile.MALE:
            return self.male
        if sex is SexProfile.FEMALE:
            return self.female
        return self.mixed


RecordLike = Union[ReferenceRow, Mapping]


def _first_value(record: Mapping, keys: Iterable[str]):
    for key in keys:
        value = record.get(key)
        if value:
            return value
    return None


def row_from_record(record: RecordLike) -> ReferenceRow:
    """
    Build a ReferenceRow from a provider record, accepting the known column
    spellings. Missing or falsy weights become 0.
    """
    if isinstance(record, ReferenceRow):
        return record
    age = None
    for key in _AGE_ALIASES:
        if key in record:
            age = coerce_int(record[key])
            break
    if age is None:
        raise InvalidInput("reference row has no usable age", details={"record": dict(record)})
    weights = {
        name: coerce_float(_first_value(record, aliases)) or 0.0
        for name, aliases in _WEIGHT_ALIASES.items()
    }
    return ReferenceRow(age_days=age, **weights)


class ReferenceCurveTable:
    """
    Read-only age -> weight lookup for one (bird type, strain) curve.

    Rows are kept sorted by age with a zero-weight sentinel at age -1, so the
    gain into day 0 is simply the day-0 weight.
    """

    __slots__ = ("_rows", "_by_age")

    def __init__(self, rows: Iterable[ReferenceRow]) -> None:
        ordered = sorted(rows, key=lambda r: r.age_days)
        if not ordered:
            raise InvalidInput("reference table has no rows")
        if ordered[0].age_days < SENTINEL_AGE:
            raise InvalidInput(
                "reference ages must be >= -1",
                details={"age_days": ordered[0].age_days},
            )
        if ordered[0].age_days != SENTINEL_AGE:
            ordered.insert(0, ReferenceRow(age_days=SENTINEL_AGE))
        for prev, cur in zip(ordered, ordered[1:]):
            if cur.age_days == prev.age_days:
                raise InvalidInput("duplicate reference age", details={"age_days": cur.age_days})
        self._rows: Tuple[ReferenceRow, ...] = tuple(ordered)
        self._by_age = MappingProxyType({r.age_days: r for r in ordered})

    @classmethod
    def from_records(cls, records: Iterable[RecordLike]) -> "ReferenceCurveTable":
        return cls(row_from_record(r) for r in records)

    @property
    def rows(self) -> Tuple[ReferenceRow, ...]:
        return self._rows

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[ReferenceRow]:
        return iter(self._rows)

    def __contains__(self, age_days: object) -> bool:
        return age_days in self._by_age

    def find(self, age_days: int) -> Optional[ReferenceRow]:
        return self._by_age.get(age_days)

    def row(self, age_days: int) -> ReferenceRow:
        found = self._by_age.get(age_days)
        if found is None:
            raise ReferenceLookupMiss(
                f"no reference row for age {age_days}",
                details={"age_days": age_days},
            )
        return found

    def weight(self, age_days: int, sex: SexProfile) -> float:
        return self.row(age_days).weight_for(sex)

    def gain(self, from_age: int, to_age: int, sex: SexProfile) -> Optional[float]:
        """Reference weight change between two ages, or None when either row is missing."""
        try:
            return self.weight(to_age, sex) - self.weight(from_age, sex)
        except ReferenceLookupMiss:
            return None


# ---------- Registry ----------


class ReferenceKey(NamedTuple):
    bird_type: str
    strain: str


_BIRD_TYPE_ALIASES: Dict[str, str] = {
    "broiler": "broilers",
    "breeder": "breeders",
    "reproductores": "breeders",
    "turkey": "turkeys",
    "pavos": "turkeys",
}

# Cobb flocks are tracked against the Ross curves; there is no Cobb table.
STRAIN_SUBSTITUTIONS: Dict[str, str] = {"cobb": "ross"}

DEFAULT_KEY = ReferenceKey("broilers", "ross")

ReferenceLoader = Callable[[], Iterable[RecordLike]]


def normalize_name(value: str) -> str:
    return re.sub(r"\s+", "", (value or "").strip().lower())


def normalize_key(bird_type: str, strain: str) -> ReferenceKey:
    bird = normalize_name(bird_type)
    bird = _BIRD_TYPE_ALIASES.get(bird, bird)
    line = normalize_name(strain)
    line = STRAIN_SUBSTITUTIONS.get(line, line)
    return ReferenceKey(bird, line)


class ReferenceCurveRegistry:
    """
    Typed lookup of reference curves keyed by normalized (bird_type, strain).

    Loaders are provided by the host (database, HTTP, fixtures); each table is
    loaded at most once and then shared read-only.
    """

    def __init__(self, default_key: Optional[ReferenceKey] = DEFAULT_KEY) -> None:
        self._default_key = default_key
        self._loaders: Dict[ReferenceKey, ReferenceLoader] = {}
        self._tables: Dict[ReferenceKey, ReferenceCurveTable] = {}
        self._lock = threading.Lock()

    def register(
        self,
        bird_type: str,
        strain: str,
        source: Union[ReferenceLoader, ReferenceCurveTable],
    ) -> ReferenceKey:
        key = normalize_key(bird_type, strain)
        with self._lock:
            self._tables.pop(key, None)
            if isinstance(source, ReferenceCurveTable):
                self._tables[key] = source
                self._loaders[key] = lambda: source.rows
            else:
                self._loaders[key] = source
        return key

    def keys(self) -> Tuple[ReferenceKey, ...]:
        return tuple(self._loaders)

    def resolve_key(self, bird_type: str, strain: str) -> ReferenceKey:
        key = normalize_key(bird_type, strain)
        if key in self._loaders:
            return key
        if self._default_key is not None and self._default_key in self._loaders:
            logger.warning(
                "reference.fallback",
                requested=f"{key.bird_type}_{key.strain}",
                used=f"{self._default_key.bird_type}_{self._default_key.strain}",
            )
            return self._default_key
        raise ReferenceLookupMiss(
            f"no reference curve for {key.bird_type}/{key.strain}",
            details={"bird_type": key.bird_type, "strain": key.strain},
        )

    def get(self, bird_type: str, strain: str) -> ReferenceCurveTable:
        key = self.resolve_key(bird_type, strain)
        with self._lock:
            table = self._tables.get(key)
            if table is None:
                table = ReferenceCurveTable.from_records(self._loaders[key]())
                self._tables[key] = table
                logger.info("reference.loaded", bird_type=key.bird_type, strain=key.strain, rows=len(table))
        return table

    def table_for(self, context: FlockContext) -> ReferenceCurveTable:
        return self.get(context.bird_type, context.strain)


__all__ = [
    "DEFAULT_KEY",
    "ReferenceCurveRegistry",
    "ReferenceCurveTable",
    "ReferenceKey",
    "ReferenceRow",
    "SENTINEL_AGE",
    "STRAIN_SUBSTITUTIONS",
    "normalize_key",
    "row_from_record",
]
