import asyncio
import csv
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Union

from orulab.commons.logger import logger
from orulab.reference.index import ReferenceRangeIndex
from orulab.validation.validators import (
    ReferenceColumns,
    ReferenceRow,
    reference_row_from_record,
)


def load_reference_rows(
    path: Union[str, Path],
    columns: Optional[ReferenceColumns] = None,
    delimiter: str = ",",
) -> List[ReferenceRow]:
    """Read the reference CSV in file order. Missing cells become ""."""
    columns = columns or ReferenceColumns()
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f, delimiter=delimiter)
        rows = [reference_row_from_record(rec, columns) for rec in reader]
    logger.info(f"Reference table {path} loaded with {len(rows)} entries")
    return rows


class ReferenceIndexProvider:
    """
    Builds the ReferenceRangeIndex once, on first ``get()``.

    Callers that arrive while the load is in flight await the same task, so
    the loader runs once whether it succeeds or fails. The loader runs in a
    worker thread so the event loop keeps serving. A failed load is not
    cached: the next ``get()`` starts a new one.
    """

    def __init__(self, load_rows: Callable[[], Iterable[Any]]):
        self._load_rows = load_rows
        self._index: Optional[ReferenceRangeIndex] = None
        self._pending: Optional[asyncio.Future] = None

    @classmethod
    def from_csv(
        cls,
        path: Union[str, Path],
        columns: Optional[ReferenceColumns] = None,
        delimiter: str = ",",
    ) -> "ReferenceIndexProvider":
        return cls(lambda: load_reference_rows(path, columns, delimiter))

    @property
    def loaded(self) -> bool:
        return self._index is not None

    def _build(self) -> ReferenceRangeIndex:
        return ReferenceRangeIndex(self._load_rows())

    async def _load(self) -> ReferenceRangeIndex:
        try:
            index = await asyncio.to_thread(self._build)
        except BaseException as ex:
            self._pending = None
            logger.error(f"Reference table load failed: {ex}")
            raise
        self._index = index
        self._pending = None
        return index

    async def get(self) -> ReferenceRangeIndex:
        if self._index is not None:
            return self._index
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._load())
        # a cancelled caller must not cancel the shared load
        return await asyncio.shield(self._pending)
