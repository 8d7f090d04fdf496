import re
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple, Union


class ParseError(ValueError):
    """Raised when a message is empty or holds no segments."""


@dataclass(frozen=True)
class Atom:
    value: Union[str, int, float]

    def text(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class FieldList:
    items: Tuple["FieldValue", ...] = ()

    def first(self) -> "FieldValue":
        return self.items[0] if self.items else EMPTY


FieldValue = Union[Atom, FieldList]

EMPTY = Atom("")

DEFAULT_SEPARATORS = {"f": "|", "c": "^", "r": "~", "e": "\\", "s": "&"}


@dataclass(frozen=True)
class Segment:
    fields: Tuple[FieldValue, ...]
    component_separator: str = "^"

    def __len__(self) -> int:
        return len(self.fields)

    def __getitem__(self, idx: int) -> FieldValue:
        return self.fields[idx]

    def field(self, idx: int) -> FieldValue:
        """Field at ``idx`` or an empty atom when the segment is shorter."""
        if 0 <= idx < len(self.fields):
            return self.fields[idx]
        return EMPTY

    @property
    def type_code(self) -> str:
        head = self.field(0)
        if isinstance(head, FieldList):
            head = head.first()
        return head.text().strip() if isinstance(head, Atom) else ""


def as_field_value(raw: Any) -> FieldValue:
    """Wrap whatever the decoder produced into the Atom / FieldList union."""
    if isinstance(raw, (Atom, FieldList)):
        return raw
    if raw is None:
        return EMPTY
    if isinstance(raw, (list, tuple)):
        return FieldList(tuple(as_field_value(x) for x in raw))
    if isinstance(raw, (str, int, float)) and not isinstance(raw, bool):
        return Atom(raw)
    return Atom(str(raw))


def split_segments(hl7_text: str) -> List[str]:
    """Split on CR, LF or CRLF, skipping blank lines."""
    return [s for s in re.split(r"\r\n|\n|\r", hl7_text) if s.strip()]


def detect_separators(segments: List[str]) -> Dict[str, str]:
    """
    Read separators from the first MSH:
    - field sep = MSH[3]
    - encoding chars (MSH-2): comp, rept, esc, subcomp
    """
    seps = dict(DEFAULT_SEPARATORS)
    msh = next((s for s in segments if s.startswith("MSH")), "")
    if len(msh) < 4:
        return seps
    f = msh[3]
    enc = msh[4:].split(f, 1)[0]
    seps["f"] = f
    for key, ch in zip(("c", "r", "e", "s"), enc):
        seps[key] = ch
    return seps


def _decode_field(text: str, seps: Dict[str, str]) -> Union[str, List[str]]:
    # One level only: repetitions win over components, the rest stays in the string
    if seps["r"] in text:
        return text.split(seps["r"])
    if seps["c"] in text:
        return text.split(seps["c"])
    return text


def _decode_segment(line: str, seps: Dict[str, str]) -> List[Any]:
    f = seps["f"]
    if line.startswith("MSH" + f):
        # MSH-1 is the field separator itself, MSH-2 the encoding characters
        rest = line[4:].split(f)
        head = ["MSH", f, rest[0]]
        return head + [_decode_field(x, seps) for x in rest[1:]]
    return [_decode_field(x, seps) for x in line.split(f)]


def parse_message(hl7_text: Union[str, bytes]) -> List[Segment]:
    if isinstance(hl7_text, (bytes, bytearray)):
        hl7_text = bytes(hl7_text).decode("utf-8", errors="replace")
    if not hl7_text or not hl7_text.strip():
        raise ParseError("HL7 message is empty")

    lines = split_segments(hl7_text.lstrip("\ufeff"))
    if not lines:
        raise ParseError("No segments found in HL7 message")

    seps = detect_separators(lines)
    segments = [
        Segment(
            tuple(as_field_value(raw) for raw in _decode_segment(line, seps)),
            component_separator=seps["c"],
        )
        for line in lines
    ]
    return segments
