import pytest

from orulab.commons.lab_engine import LabEngine
from orulab.parsers.message import ParseError, Segment, as_field_value
from orulab.reference.index import ReferenceRangeIndex

ROWS = [
    {"codes": "2345-7;XYZ", "units": "mg/dL;MG/DL", "lower": "70", "upper": "100"},
    {"codes": "718-7", "units": "g/dL", "lower": "12.0", "upper": "17.5"},
]

HEADER = "MSH|^~\\&|LAB|FAC|EHR|FAC|20250101080000||ORU^R01|MSG1|P|2.5\rPID|1||123456\r"


def message(*obx_rows: str) -> str:
    return HEADER + "".join(r + "\r" for r in obx_rows)


GLUCOSE_95 = "OBX|1|NM|2345-7^Glucose^LN||95|mg/dL^milligram per deciliter^UCUM|70-100|N|||F"
GLUCOSE_120 = "OBX|1|NM|2345-7^Glucose^LN||120|mg/dL^milligram per deciliter^UCUM|70-100|H|||F"


@pytest.fixture
def engine():
    return LabEngine(ReferenceRangeIndex(ROWS))


def test_normal_glucose(engine):
    payload = engine.to_payload(engine.classify(message(GLUCOSE_95)))
    assert payload == {
        "results": [
            {"code": "2345-7", "value": 95, "units": "mg/dL", "isAbnormal": False, "range": "70 - 100"}
        ]
    }


def test_high_glucose(engine):
    [res] = engine.classify(message(GLUCOSE_120))
    assert res.is_abnormal is True
    assert res.range == "70 - 100"


def test_units_without_reference_row_are_excluded(engine):
    msg = message("OBX|1|NM|2345-7^Glucose^LN||5.3|mmol/L|3.9-5.5|N|||F")
    assert engine.classify(msg) == []


def test_non_numeric_value_keeps_only_the_valid_row(engine):
    msg = message(
        "OBX|1|NM|718-7^Hemoglobin^LN||PENDING|g/dL|12-17.5||||F",
        GLUCOSE_95,
    )
    results = engine.classify(msg)
    assert [r.code for r in results] == ["2345-7"]


def test_output_follows_message_order(engine):
    msg = message(
        "OBX|1|NM|718-7^Hemoglobin^LN||11.0|g/dL|12-17.5|L|||F",
        GLUCOSE_95,
        "OBX|3|NM|XYZ||130|MG/DL||H|||F",
    )
    assert [(r.code, r.is_abnormal) for r in engine.classify(msg)] == [
        ("718-7", True),
        ("2345-7", False),
        ("XYZ", True),
    ]


def test_no_obx_gives_empty_result(engine):
    assert engine.classify(HEADER + "OBR|1|ORD1\r") == []


def test_repeated_runs_are_identical(engine):
    msg = message(GLUCOSE_95, GLUCOSE_120)
    assert engine.classify(msg) == engine.classify(msg)


def test_bytes_input(engine):
    assert len(engine.classify(message(GLUCOSE_95).encode("utf-8"))) == 1


@pytest.mark.parametrize("text", ["", "  \n "])
def test_empty_message_is_a_parse_error(engine, text):
    with pytest.raises(ParseError):
        engine.classify(text)


def test_nested_units_shape_does_not_fail_the_batch(engine):
    segs = [
        Segment(tuple(as_field_value(f) for f in ["OBX", "1", "NM", "2345-7", "", "95", [[["mg/dL"]]]])),
        Segment(tuple(as_field_value(f) for f in ["OBX", "2", "NM", "2345-7", "", "99", "mg/dL"])),
    ]
    observations = engine.extract(segs)
    assert [o.value for o in engine.classifier.classify_all(observations)] == [99.0]
