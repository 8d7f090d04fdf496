from typing import Any

from orulab.parsers.message import DEFAULT_SEPARATORS, Atom, FieldList


def _before_component(text: str, sep: str) -> str:
    return text.split(sep, 1)[0].strip()


def _number_text(num) -> str:
    # 5.0 -> "5", 2.5 -> "2.5"
    if isinstance(num, float) and num.is_integer():
        return str(int(num))
    return str(num)


def _atom_units(atom: Atom, sep: str) -> str:
    value = atom.value
    if isinstance(value, str):
        return _before_component(value, sep)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _number_text(value)
    return ""


def normalize_units(field: Any, component_separator: str = DEFAULT_SEPARATORS["c"]) -> str:
    """Canonical units for an OBX-6 value. Never raises; "" means unusable.

    - "mg/dL^milligrams" -> "mg/dL"
    - FieldList(["mg/dL", ...]) -> "mg/dL"
    - Atom(5) -> "5"
    - anything else -> ""

    ``component_separator`` is the message's own (MSH-2), "^" by default.
    """
    try:
        if isinstance(field, Atom):
            return _atom_units(field, component_separator)
        if isinstance(field, FieldList):
            head = field.first() if field.items else None
            if isinstance(head, Atom):
                return _atom_units(head, component_separator)
            return ""
        return ""
    except Exception:
        return ""
