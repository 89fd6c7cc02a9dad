"""
Year-Indexed Series

One line of a multi-year projection, indexed by operating year.
Year 0 is the pre-operating / acquisition year. Keys are ordered by the
numeric year, never lexically ("y10" sorts after "y9").
"""

import logging
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

YEAR_PREFIX = "y"


def year_key(year: int) -> str:
    """Return the external string tag for a year index (3 -> "y3")."""
    return f"{YEAR_PREFIX}{year}"


def parse_year_key(key) -> int:
    """
    Parse a year tag into its integer index.

    Accepts "y7", "7" or 7.

    Raises:
        ValueError: If the key is not a year tag
    """
    if isinstance(key, int):
        return key
    text = str(key).strip().lower()
    if text.startswith(YEAR_PREFIX):
        text = text[len(YEAR_PREFIX):]
    if not text.isdigit():
        raise ValueError(f"Invalid year key: {key!r}")
    return int(text)


def sort_year_keys(keys: Iterable) -> List[str]:
    """Sort year tags numerically on the embedded index."""
    return sorted((year_key(parse_year_key(k)) for k in keys), key=parse_year_key)


def years_through(years: Sequence[int], exit_year_index: Optional[int]) -> List[int]:
    """Filter years 0..exit_year_index (inclusive). None keeps all years."""
    if exit_year_index is None:
        return list(years)
    return [y for y in years if y <= exit_year_index]


class YearSeries:
    """
    Ordered mapping of year index -> value, contiguous from year 0.

    Lookups past the last year return None ("unknown"), not zero.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Iterable = ()):
        self._values = list(values)

    @classmethod
    def filled(cls, value, years: int) -> "YearSeries":
        """Series of `years` entries (year 0 .. years-1), all equal to value."""
        return cls([value] * years)

    @classmethod
    def from_mapping(cls, mapping: Mapping, default=None) -> "YearSeries":
        """
        Build from {"y0": v, "y1": v, ...}. Gaps inside the range take `default`.
        """
        if not mapping:
            return cls()
        parsed = {parse_year_key(k): v for k, v in mapping.items()}
        last = max(parsed)
        return cls(parsed.get(y, default) for y in range(last + 1))

    @property
    def years(self) -> List[int]:
        return list(range(len(self._values)))

    @property
    def last_year(self) -> int:
        return len(self._values) - 1

    def keys(self) -> List[str]:
        return [year_key(y) for y in range(len(self._values))]

    def values(self) -> List:
        return list(self._values)

    def items(self) -> Iterator[Tuple[int, object]]:
        return iter(enumerate(self._values))

    def get(self, year, default=None):
        y = parse_year_key(year)
        if 0 <= y < len(self._values):
            return self._values[y]
        return default

    def __getitem__(self, year):
        y = parse_year_key(year)
        if not 0 <= y < len(self._values):
            raise KeyError(year_key(y))
        return self._values[y]

    def __contains__(self, year) -> bool:
        try:
            y = parse_year_key(year)
        except ValueError:
            return False
        return 0 <= y < len(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator:
        return iter(self._values)

    def __eq__(self, other) -> bool:
        if isinstance(other, YearSeries):
            return self._values == other._values
        return NotImplemented

    def __repr__(self) -> str:
        return f"YearSeries({self.to_dict()!r})"

    def map(self, fn) -> "YearSeries":
        """Apply fn(year, value) to every entry, returning a new series."""
        return YearSeries(fn(y, v) for y, v in enumerate(self._values))

    def through(self, year: int) -> "YearSeries":
        """Truncate to years 0..year inclusive."""
        return YearSeries(self._values[: max(0, year + 1)])

    def to_dict(self) -> Dict[str, object]:
        return {year_key(y): v for y, v in enumerate(self._values)}


def clamp_pre_operating_to_zero(series: YearSeries) -> YearSeries:
    """Force year 0 to 0 and keep y1..yN as is."""
    return series.map(lambda y, v: 0.0 if y == 0 else v)


def build_index_from_rates(
    rates: Mapping,
    years: Sequence,
    base: float = 1.0,
) -> YearSeries:
    """
    Compound year-over-year rates into a cumulative index.

    The first year equals `base`; each later year is the previous index times
    (1 + rate for that year). A year with no rate compounds at 0.

    Args:
        rates: Per-year rates as decimals, keyed by year tag or index
            (e.g., {"y1": 0.03}); a YearSeries is also accepted
        years: Ordered years (tags or indices) starting at the anchor year
        base: Index value of the first year

    Returns:
        YearSeries over 0..len(years)-1
    """
    if isinstance(rates, YearSeries):
        lookup = dict(rates.items())
    else:
        lookup = {parse_year_key(k): v for k, v in (rates or {}).items()}

    index = []
    acc = base
    for i, year in enumerate(years):
        if i == 0:
            index.append(base)
            continue
        rate = lookup.get(parse_year_key(year))
        acc = acc * (1 + (rate or 0.0))
        index.append(acc)
    return YearSeries(index)
