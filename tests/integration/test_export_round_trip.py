"""
Round-trip tests: exporting merged records to XML and parsing the export again
reproduces every visible value under the same label.
"""

from pathlib import Path

import pytest

from xml_catalog import CatalogSession, OverlayStore, parse_catalog


FIXTURES = Path(__file__).resolve().parent.parent / "fixtures"


def values_by_label(parse_result):
    """One {label: value} dict per record."""
    return [
        {parse_result.label_map[key]: value for key, value in record.items() if key != "id"}
        for record in parse_result.records
    ]


@pytest.fixture
def session():
    session = CatalogSession(store=OverlayStore())
    assert session.load_file(FIXTURES / "animals.xml").success
    return session


def test_round_trip_preserves_values(session):
    session.add_custom_field("1", "slot_1", "NAME", "Panthera leo")

    reparsed = parse_catalog(session.export_xml())

    assert reparsed.record_tag == "ANIMAL"
    exported = values_by_label(reparsed)
    assert [row["NAME"] for row in exported] == ["Panthera leo", "Owl", "Zebra"]
    assert [row["ID"] for row in exported] == ["1", "2", "3"]
    for row, record in zip(exported, session.records):
        for key, label in session.label_map.items():
            assert row[label] == record.values[key]


def test_hidden_fields_are_lost(session):
    session.view.hide_fields(["slot_3"])

    reparsed = parse_catalog(session.export_xml())

    assert "DIET" not in reparsed.label_map.values()
    assert [row["HABITAT"] for row in values_by_label(reparsed)] == ["Savanna", "Forest", "Savanna"]


def test_custom_columns_survive_as_fields(session):
    session.create_group(["1", "3"], "Big Cats", "Big Cats")

    reparsed = parse_catalog(session.export_xml())

    assert [row["big_cats"] for row in values_by_label(reparsed)] == ["Big Cats", "", "Big Cats"]


def test_unicode_and_markup_characters(session):
    session.add_custom_field("2", "slot_1", "NAME", "Eule <Strix> & Co. ü")

    reparsed = parse_catalog(session.export_xml())

    assert values_by_label(reparsed)[1]["NAME"] == "Eule <Strix> & Co. ü"


def test_source_field_labelled_id_survives():
    session = CatalogSession(store=OverlayStore())
    session.load_text(
        "<ROWS>"
        "<ROW><ID>A-17</ID><NAME>Lion</NAME></ROW>"
        "<ROW><ID>B-02</ID><NAME>Owl</NAME></ROW>"
        "</ROWS>"
    )

    reparsed = parse_catalog(session.export_xml())

    exported = values_by_label(reparsed)
    assert [row["ID"] for row in exported] == ["A-17", "B-02"]
    assert [row["NAME"] for row in exported] == ["Lion", "Owl"]


def test_fields_without_valid_tag_names_survive(session):
    session.add_custom_field("1", "my notes", "My Notes", "big")
    session.add_custom_field("2", "other notes", "Other Notes", "nocturnal")
    session.add_custom_field("3", "m²", "Area", "12")

    reparsed = parse_catalog(session.export_xml())

    exported = values_by_label(reparsed)
    assert [row["my notes"] for row in exported] == ["big", "", ""]
    assert [row["other notes"] for row in exported] == ["", "nocturnal", ""]
    assert [row["m²"] for row in exported] == ["", "", "12"]
