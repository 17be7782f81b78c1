"""
Unit tests for SchemaInferencer record type and field discovery.

Test Coverage:
- Most frequent element-with-children wins, first occurrence breaks ties
- Single flat record documents (root children are all leaves)
- Field names unioned across records in first-seen order
- Field cap at MAX_SLOTS with dropped fields reported
- Empty documents
"""

import pytest

from xml_catalog.exceptions import SchemaError
from xml_catalog.models import MAX_SLOTS
from xml_catalog.parsing.schema_inferencer import SchemaInferencer
from xml_catalog.parsing.xml_parser import XMLParser


ANIMALS_XML = (
    "<CATALOG>"
    "<ANIMAL><NAME>Lion</NAME><HABITAT>Savanna</HABITAT></ANIMAL>"
    "<ANIMAL><NAME>Owl</NAME><HABITAT>Forest</HABITAT></ANIMAL>"
    "</CATALOG>"
)


def infer(xml_text, max_fields=MAX_SLOTS):
    root = XMLParser().parse_xml_stream(xml_text)
    return SchemaInferencer(max_fields=max_fields).infer_schema(root)


def test_repeated_element_becomes_record_type():
    schema = infer(ANIMALS_XML)

    assert schema.record_tag == "ANIMAL"
    assert schema.field_names == ["NAME", "HABITAT"]
    assert len(schema.elements) == 2
    assert schema.single_record is False
    assert schema.dropped_fields == []


def test_most_frequent_tag_wins_over_wrapper():
    schema = infer(
        "<ROOT><GROUP>"
        "<ITEM><N>1</N></ITEM><ITEM><N>2</N></ITEM><ITEM><N>3</N></ITEM>"
        "</GROUP></ROOT>"
    )

    assert schema.record_tag == "ITEM"
    assert len(schema.elements) == 3


def test_leaf_siblings_of_records_are_ignored():
    schema = infer(
        "<CATALOG><TITLE>Zoo</TITLE>"
        "<ANIMAL><NAME>Lion</NAME></ANIMAL><ANIMAL><NAME>Owl</NAME></ANIMAL>"
        "</CATALOG>"
    )

    assert schema.record_tag == "ANIMAL"
    assert schema.field_names == ["NAME"]


@pytest.mark.parametrize("xml_text, expected", [
    ("<R><A><x>1</x></A><B><y>2</y></B></R>", "A"),
    ("<R><B><y>2</y></B><A><x>1</x></A></R>", "B"),
])
def test_tie_goes_to_first_seen_tag(xml_text, expected):
    assert infer(xml_text).record_tag == expected


def test_tie_break_is_deterministic():
    xml_text = "<R><A><x>1</x></A><B><y>2</y></B><A><x>3</x></A><B><y>4</y></B></R>"

    results = {infer(xml_text).record_tag for _ in range(5)}

    assert results == {"A"}


def test_fields_are_unioned_across_records_in_first_seen_order():
    schema = infer(
        "<CATALOG>"
        "<ANIMAL><NAME>Lion</NAME><HABITAT>Savanna</HABITAT></ANIMAL>"
        "<ANIMAL><DIET>Seeds</DIET><NAME>Finch</NAME></ANIMAL>"
        "</CATALOG>"
    )

    assert schema.field_names == ["NAME", "HABITAT", "DIET"]


def test_root_with_only_leaf_children_is_a_single_record():
    schema = infer("<ANIMAL><NAME>Lion</NAME><HABITAT>Savanna</HABITAT></ANIMAL>")

    assert schema.single_record is True
    assert schema.record_tag == "ANIMAL"
    assert schema.field_names == ["NAME", "HABITAT"]
    assert len(schema.elements) == 1


def test_namespaced_tags_report_local_names():
    schema = infer(
        '<c:CATALOG xmlns:c="urn:catalog">'
        "<c:ANIMAL><c:NAME>Lion</c:NAME></c:ANIMAL>"
        "<c:ANIMAL><c:NAME>Owl</c:NAME></c:ANIMAL>"
        "</c:CATALOG>"
    )

    assert schema.record_tag == "ANIMAL"
    assert schema.field_names == ["NAME"]
    assert len(schema.elements) == 2


def test_fields_beyond_maximum_are_dropped():
    fields = "".join(f"<F{i}>{i}</F{i}>" for i in range(1, MAX_SLOTS + 6))
    schema = infer(f"<ROOT><ROW>{fields}</ROW><ROW>{fields}</ROW></ROOT>")

    assert len(schema.field_names) == MAX_SLOTS
    assert schema.field_names[0] == "F1"
    assert schema.field_names[-1] == f"F{MAX_SLOTS}"
    assert schema.dropped_fields == [f"F{i}" for i in range(MAX_SLOTS + 1, MAX_SLOTS + 6)]


def test_custom_field_cap_never_exceeds_maximum():
    assert SchemaInferencer(max_fields=MAX_SLOTS + 10).max_fields == MAX_SLOTS

    schema = infer("<R><A><x>1</x><y>2</y><z>3</z></A><A><x>4</x></A></R>", max_fields=2)
    assert schema.field_names == ["x", "y"]
    assert schema.dropped_fields == ["z"]


def test_root_without_children_is_empty_document():
    with pytest.raises(SchemaError) as exc_info:
        infer("<ROOT/>")

    assert str(exc_info.value) == "empty document"


def test_missing_root_is_empty_document():
    with pytest.raises(SchemaError):
        SchemaInferencer().infer_schema(None)
