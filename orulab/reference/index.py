from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from orulab.commons.numeric import parse_leading_float
from orulab.parsers.models import ReferenceRange
from orulab.validation.validators import coerce_reference_row


def _tokens(raw: str) -> frozenset:
    return frozenset(t.strip() for t in (raw or "").split(";") if t.strip())


def range_from_row(row: Any) -> ReferenceRange:
    r = coerce_reference_row(row)
    return ReferenceRange(
        codes=_tokens(r.codes),
        units=_tokens(r.units),
        lower=parse_leading_float(r.lower),
        lower_text=r.lower,
        upper=parse_leading_float(r.upper),
        upper_text=r.upper,
    )


class ReferenceRangeIndex:
    """Read-only (code, units) -> ranges lookup, built once from the reference table.

    Matches are kept in table order so ``first_match`` is the lowest row index.
    """

    def __init__(self, rows: Iterable[Any]):
        ranges = tuple(range_from_row(row) for row in rows)
        by_key: Dict[Tuple[str, str], List[ReferenceRange]] = {}
        for rr in ranges:
            for code in rr.codes:
                for unit in rr.units:
                    by_key.setdefault((code, unit), []).append(rr)
        self._ranges = ranges
        self._by_key = MappingProxyType({k: tuple(v) for k, v in by_key.items()})

    def __len__(self) -> int:
        return len(self._ranges)

    def __iter__(self) -> Iterator[ReferenceRange]:
        return iter(self._ranges)

    def lookup(self, code: str, units: str) -> Tuple[ReferenceRange, ...]:
        return self._by_key.get((code, units), ())

    def first_match(self, code: str, units: str) -> Optional[ReferenceRange]:
        matches = self.lookup(code, units)
        return matches[0] if matches else None
