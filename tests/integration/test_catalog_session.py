"""
Integration tests for CatalogSession: parse, overlay merge, view and export
working together, plus the failure boundary of every load entry point.
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from xml_catalog import CatalogSession, CustomField, FileStorageBackend, OverlayStore, WorkingRecord
from xml_catalog.exceptions import ExportError, FetchError
from xml_catalog.loading import URLSourceLoader


FIXTURES = Path(__file__).resolve().parent.parent / "fixtures"

ANIMALS_XML = (
    "<CATALOG>"
    "<ANIMAL><NAME>Lion</NAME><HABITAT>Savanna</HABITAT></ANIMAL>"
    "<ANIMAL><NAME>Owl</NAME><HABITAT>Forest</HABITAT></ANIMAL>"
    "</CATALOG>"
)


@pytest.fixture
def session():
    return CatalogSession(store=OverlayStore())


@pytest.fixture
def loaded(session):
    result = session.load_text(ANIMALS_XML)
    assert result.success
    return session


class TestLoading:

    def test_load_text(self, session):
        result = session.load_text(ANIMALS_XML)

        assert result.success
        assert result.record_count == 2
        assert result.label_map == {"id": "ID", "slot_1": "NAME", "slot_2": "HABITAT"}
        assert [r.values for r in result.records] == [
            {"id": "1", "slot_1": "Lion", "slot_2": "Savanna"},
            {"id": "2", "slot_1": "Owl", "slot_2": "Forest"},
        ]
        assert session.record_tag == "ANIMAL"
        assert session.original_xml == ANIMALS_XML

    def test_load_file_fixture(self, session):
        result = session.load_file(FIXTURES / "animals.xml")

        assert result.success
        assert result.label_map == {
            "id": "ID", "slot_1": "NAME", "slot_2": "HABITAT", "slot_3": "DIET", "slot_4": "WEIGHT"
        }
        assert result.records[0].values["slot_4"] == ""
        assert result.records[2].values["slot_4"] == "350"

    def test_load_routes_urls_to_url_loader(self):
        url_loader = MagicMock(spec=URLSourceLoader)
        url_loader.load.return_value = ANIMALS_XML
        session = CatalogSession(store=OverlayStore(), url_loader=url_loader)

        result = session.load("https://example.com/animals.xml")

        assert result.success
        url_loader.load.assert_called_once_with("https://example.com/animals.xml")

    def test_successful_load_touches_sync(self, session):
        with patch("xml_catalog.storage.overlay_store.utc_timestamp", return_value="2030-01-01T00:00:00+00:00"):
            session.load_text(ANIMALS_XML)

        assert session.store.last_sync() == "2030-01-01T00:00:00+00:00"

    def test_failed_load_does_not_touch_sync(self, loaded):
        before = loaded.store.last_sync()

        with patch("xml_catalog.storage.overlay_store.utc_timestamp", return_value="2030-01-01T00:00:00+00:00"):
            loaded.load_text("<broken")

        assert loaded.store.last_sync() == before


class TestFailureBoundary:

    @pytest.mark.parametrize("bad_xml, error_type", [
        ("<CATALOG><ANIMAL></CATALOG>", "ParseError"),
        ("<ROOT/>", "SchemaError"),
        ("   ", "SchemaError"),
        ("<CATALOG><A><B>\ud800</B></A></CATALOG>", "ParseError"),
    ])
    def test_failed_parse_keeps_previous_state(self, loaded, bad_xml, error_type):
        store_before = loaded.store.snapshot()

        result = loaded.load_text(bad_xml)

        assert result.success is False
        assert result.error_type == error_type
        assert result.error.startswith(error_type)
        assert loaded.last_error == result.error
        assert len(loaded.records) == 2
        assert loaded.label_map["slot_1"] == "NAME"
        assert loaded.original_xml == ANIMALS_XML
        assert loaded.store.snapshot() == store_before

    def test_wrong_extension(self, loaded, tmp_path):
        path = tmp_path / "animals.json"
        path.write_text(ANIMALS_XML, encoding="utf-8")

        result = loaded.load(path)

        assert result.error_type == "SourceFileError"
        assert len(loaded.records) == 2

    def test_failed_fetch(self, loaded):
        loaded.url_loader = MagicMock(spec=URLSourceLoader)
        loaded.url_loader.load.side_effect = FetchError("Failed to fetch XML: HTTP 500", "http://x", 500)

        result = loaded.load_url("http://x")

        assert result.error_type == "FetchError"
        assert "HTTP 500" in result.error
        assert len(loaded.records) == 2

    def test_success_clears_last_error(self, loaded):
        loaded.load_text("<broken")
        loaded.load_text(ANIMALS_XML)

        assert loaded.last_error is None


class TestOverlayEdits:

    def test_slot_override(self, loaded):
        records = loaded.add_custom_field("1", "slot_1", "NAME", "Panthera leo")

        assert records[0].values["slot_1"] == "Panthera leo"
        assert records[0].custom_fields == []

    def test_extra_column(self, loaded):
        records = loaded.add_custom_field("2", "notes", "Notes", "nocturnal")

        assert records[1].values == {"id": "2", "slot_1": "Owl", "slot_2": "Forest"}
        assert records[1].custom_fields == [CustomField("notes", "Notes", "nocturnal")]

    def test_remove_custom_field(self, loaded):
        loaded.add_custom_field("1", "slot_1", "NAME", "Panthera leo")

        records = loaded.remove_custom_field("1", "slot_1")

        assert records[0].values["slot_1"] == "Lion"

    def test_overlay_applies_to_next_parse(self, loaded):
        loaded.add_custom_field("2", "slot_2", "HABITAT", "Barn")

        result = loaded.load_text(ANIMALS_XML)

        assert result.records[1].values["slot_2"] == "Barn"

    def test_edits_persist_across_sessions(self, tmp_path):
        first = CatalogSession(store=OverlayStore(backend=FileStorageBackend(tmp_path)))
        first.load_text(ANIMALS_XML)
        first.add_custom_field("1", "slot_1", "NAME", "Panthera leo")
        first.add_custom_field("2", "notes", "Notes", "nocturnal")

        second = CatalogSession(store=OverlayStore(backend=FileStorageBackend(tmp_path)))
        result = second.load_text(ANIMALS_XML)

        assert result.records[0].values["slot_1"] == "Panthera leo"
        assert second.view.visible_custom_columns() == [("notes", "Notes")]

    def test_save_record_stores_only_changes(self, loaded):
        loaded.add_custom_field("2", "notes", "Notes", "nocturnal")
        edited = WorkingRecord(
            values={"id": "2", "slot_1": "Barn Owl", "slot_2": "Forest"},
            custom_fields=[CustomField("notes", "Notes", "nocturnal"), CustomField("zoo", "Zoo", "Berlin")]
        )

        records = loaded.save_record(edited)

        assert loaded.store.get_fields("2") == [
            CustomField("notes", "Notes", "nocturnal"),
            CustomField("slot_1", "", "Barn Owl"),
            CustomField("zoo", "Zoo", "Berlin"),
        ]
        assert records[1].values["slot_1"] == "Barn Owl"
        assert records[1].get("zoo") == "Berlin"
        assert loaded.view.is_group_column("zoo")

    def test_save_record_edited_in_place(self, loaded):
        record = loaded.records[0]
        record.values["slot_2"] = "Grassland"

        loaded.save_record(record)

        assert loaded.store.get_fields("1") == [CustomField("slot_2", "", "Grassland")]
        assert loaded.records[0].values["slot_2"] == "Grassland"

    def test_save_record_with_unknown_id(self, loaded):
        records = loaded.save_record(WorkingRecord(values={"id": "99", "slot_1": "Ghost"}))

        assert loaded.store.record_ids() == []
        assert [r.id for r in records] == ["1", "2"]

    def test_independent_sessions_do_not_share_state(self):
        first = CatalogSession(store=OverlayStore())
        second = CatalogSession(store=OverlayStore())
        first.load_text(ANIMALS_XML)
        second.load_text(ANIMALS_XML)

        first.add_custom_field("1", "slot_1", "NAME", "Panthera leo")

        assert second.refresh()[0].values["slot_1"] == "Lion"


class TestGroupsAndColumns:

    def test_create_group(self, loaded):
        records = loaded.create_group(["1", "2"], "Big  Cats", "Big Cats")

        assert loaded.view.custom_columns == [("big_cats", "Big Cats")]
        assert all(r.get("big_cats") == "Big Cats" for r in records)
        assert loaded.store.get_fields("1") == [CustomField("big_cats", "Big Cats", "Big Cats")]

    @pytest.mark.parametrize("name, label", [("", "Label"), ("  ", "Label"), ("Name", ""), ("Name", "  ")])
    def test_create_group_requires_name_and_label(self, loaded, name, label):
        with pytest.raises(ValueError):
            loaded.create_group(["1"], name, label)

    def test_rename_column(self, loaded):
        loaded.create_group(["1", "2"], "Big Cats", "Big Cats")
        loaded.add_custom_field("1", "notes", "Notes", "leader")

        records = loaded.rename_column("big_cats", "Large Cats")

        assert loaded.view.custom_columns == [("big_cats", "Large Cats"), ("notes", "Notes")]
        assert loaded.store.get_fields("1") == [
            CustomField("big_cats", "Large Cats", "Big Cats"),
            CustomField("notes", "Notes", "leader"),
        ]
        assert records[1].custom_fields == [CustomField("big_cats", "Large Cats", "Big Cats")]
        assert loaded.export_csv().split("\n")[0] == '"ID","NAME","HABITAT","Large Cats","Notes"'

    @pytest.mark.parametrize("name, label", [("big_cats", ""), ("big_cats", "  "), ("unknown", "Label")])
    def test_rename_column_rejects_bad_input(self, loaded, name, label):
        loaded.create_group(["1"], "Big Cats", "Big Cats")

        with pytest.raises(ValueError):
            loaded.rename_column(name, label)

    def test_delete_column(self, loaded):
        loaded.create_group(["1", "2"], "Big Cats", "Big Cats")
        loaded.add_custom_field("1", "notes", "Notes", "leader")

        records = loaded.delete_column("big_cats")

        assert not loaded.view.is_group_column("big_cats")
        assert [f.name for f in records[0].custom_fields] == ["notes"]
        assert records[1].custom_fields == []


class TestRestoreOriginal:

    def test_restore_wipes_overlay_and_view(self, loaded):
        loaded.add_custom_field("1", "slot_1", "NAME", "Panthera leo")
        loaded.create_group(["2"], "Night", "Night")
        loaded.view.deactivate(["1"])
        loaded.view.set_filter("slot_2", ["Forest"])

        result = loaded.restore_original()

        assert result.success
        assert loaded.store.record_ids() == []
        assert [r.values for r in loaded.records] == loaded.source_records
        assert all(r.custom_fields == [] for r in loaded.records)
        assert loaded.view.custom_columns == []
        assert loaded.view.deactivated_ids == set()
        assert loaded.view.column_filters == {}

    def test_restore_reparses_last_successful_document(self, session):
        session.load_text(ANIMALS_XML)
        session.load_text("<LIST><ITEM><N>a</N></ITEM><ITEM><N>b</N></ITEM></LIST>")
        session.load_text("<broken")

        session.restore_original()

        assert session.record_tag == "ITEM"

    def test_restore_without_document(self, session):
        result = session.restore_original()

        assert result.success is False
        assert "No document" in result.error


class TestExport:

    def test_export_csv_respects_view(self, loaded):
        loaded.add_custom_field("2", "notes", "Notes", "nocturnal")
        loaded.view.hide_fields(["slot_2"])
        loaded.view.set_filter("slot_1", ["Owl"])

        text = loaded.export_csv()

        assert text.split("\n") == ['"ID","NAME","Notes"', '"2","Owl","nocturnal"']

    def test_export_xml_flags_deactivated(self, loaded):
        loaded.view.deactivate(["2"])

        text = loaded.export_xml()

        assert '<ANIMAL deactivated="true">' in text
        assert text.count("<ANIMAL>") == 1

    def test_export_follows_sort_order(self, loaded):
        loaded.view.sort_by("slot_1")
        loaded.view.sort_by("slot_1")

        text = loaded.export_csv()

        assert text.split("\n")[1] == '"2","Owl","Forest"'

    def test_export_xml_rejects_unwritable_label(self, loaded):
        loaded.add_custom_field("1", "notes", "bad\x01label", "x")

        with pytest.raises(ExportError):
            loaded.export_xml()

    def test_export_to_files(self, loaded, tmp_path):
        xml_text = loaded.export_xml(tmp_path / "out.xml")
        csv_text = loaded.export_csv(tmp_path / "out.csv")

        assert (tmp_path / "out.xml").read_text(encoding="utf-8") == xml_text
        assert (tmp_path / "out.csv").read_text(encoding="utf-8") == csv_text

    def test_from_config(self, tmp_path, monkeypatch):
        from xml_catalog.config import ConfigManager

        monkeypatch.delenv("XML_CATALOG_SETTINGS", raising=False)
        monkeypatch.setenv("XML_CATALOG_STORAGE_DIR", str(tmp_path))
        monkeypatch.setenv("XML_CATALOG_EXPORT_ROOT_TAG", "ZOO")
        monkeypatch.setenv("XML_CATALOG_CSV_ESCAPE_QUOTES", "false")

        session = CatalogSession.from_config(ConfigManager())
        session.load_text(ANIMALS_XML)

        assert session.export_xml().splitlines()[1] == "<ZOO>"
        assert session.export_csv().split("\n")[0] == "ID,NAME,HABITAT"
        assert (tmp_path / "animal_catalog_data.json").exists()
