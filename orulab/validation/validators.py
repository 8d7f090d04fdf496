# orulab/validation/validators.py
from typing import Any, Mapping

from pydantic import BaseModel, field_validator


class ReferenceRow(BaseModel):
    """One row of the reference table, as the four raw strings it carries."""

    codes: str = ""  # "2345-7;XYZ"
    units: str = ""  # "mg/dL;MG/DL"
    lower: str = ""
    upper: str = ""

    @field_validator("codes", "units", "lower", "upper", mode="before")
    @classmethod
    def _as_text(cls, v: Any):
        if v is None:
            return ""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class ReferenceColumns(BaseModel):
    """Column names of the reference CSV."""

    codes: str = "oru_sonic_codes"
    units: str = "oru_sonic_units"
    lower: str = "everlab_lower"
    upper: str = "everlab_higher"


def reference_row_from_record(record: Mapping[str, Any], columns: ReferenceColumns) -> ReferenceRow:
    """Raises ValidationError if a cell holds something that is not text."""
    return ReferenceRow(
        codes=record.get(columns.codes),
        units=record.get(columns.units),
        lower=record.get(columns.lower),
        upper=record.get(columns.upper),
    )


def coerce_reference_row(row: Any) -> ReferenceRow:
    """Accept a ReferenceRow, a mapping with the four keys or any object with the four attributes."""
    if isinstance(row, ReferenceRow):
        return row
    if isinstance(row, Mapping):
        return ReferenceRow(**{k: row.get(k) for k in ("codes", "units", "lower", "upper")})
    return ReferenceRow(
        codes=getattr(row, "codes", ""),
        units=getattr(row, "units", ""),
        lower=getattr(row, "lower", ""),
        upper=getattr(row, "upper", ""),
    )
