# ===============================
# File: orulab/parsers/models.py
# ===============================
import math
from dataclasses import dataclass
from typing import Dict, FrozenSet, Union


@dataclass(frozen=True)
class Observation:
    code: str
    value: float
    units: str

    def __post_init__(self):
        if not self.code or not self.units or not math.isfinite(self.value):
            raise ValueError(f"Invalid observation: {self!r}")


@dataclass(frozen=True)
class ReferenceRange:
    codes: FrozenSet[str]
    units: FrozenSet[str]
    lower: float
    lower_text: str
    upper: float
    upper_text: str

    def matches(self, code: str, units: str) -> bool:
        return code in self.codes and units in self.units

    @property
    def display(self) -> str:
        # Original bound strings, never reformatted from the floats
        return f"{self.lower_text} - {self.upper_text}"


@dataclass(frozen=True)
class ClassifiedObservation:
    code: str
    value: float
    units: str
    is_abnormal: bool
    range: str

    def to_dict(self) -> Dict[str, Union[str, float, bool]]:
        return {
            "code": self.code,
            "value": self.value,
            "units": self.units,
            "isAbnormal": self.is_abnormal,
            "range": self.range,
        }
