from typing import Iterable, List, Optional

from orulab.commons.logger import logger
from orulab.commons.numeric import parse_finite_float
from orulab.parsers.message import Atom, FieldList, FieldValue, Segment
from orulab.parsers.models import Observation
from orulab.parsers.units import normalize_units

OBX = "OBX"

# OBX positions
CODE_IDX = 3
VALUE_IDX = 5
UNITS_IDX = 6


def _first_text(value: FieldValue) -> str:
    if isinstance(value, FieldList):
        value = value.first()
    if isinstance(value, Atom):
        return value.text()
    return ""


def observation_from_segment(segment: Segment) -> Optional[Observation]:
    """Build an Observation from one OBX segment, or None when any part is unusable."""
    code = _first_text(segment.field(CODE_IDX)).strip()
    value = parse_finite_float(_first_text(segment.field(VALUE_IDX)))
    units = normalize_units(segment.field(UNITS_IDX), segment.component_separator)

    if not code or value is None or not units:
        logger.debug(
            f"Dropping OBX (code={code!r}, value={_first_text(segment.field(VALUE_IDX))!r}, "
            f"units={units!r})"
        )
        return None
    return Observation(code=code, value=value, units=units)


def extract_observations(segments: Iterable[Segment]) -> List[Observation]:
    observations: List[Observation] = []
    for seg in segments:
        if seg.type_code != OBX:
            continue
        obs = observation_from_segment(seg)
        if obs is not None:
            observations.append(obs)
    return observations
