"""
Persistent overlay of user supplied fields ("custom fields") per record id.

The overlay is kept apart from any source document: parsing a file never
touches it and exporting never writes back into the source. One JSON blob
under a fixed storage key holds the whole store:

    {
        "version": "1.0.0",
        "lastSync": "2026-10-18T12:00:00+00:00",
        "customFields": {
            "1": [{"name": "slot_1", "label": "NAME", "value": "Panthera leo"}],
            "2": [{"name": "notes", "label": "Notes", "value": "nocturnal"}]
        }
    }

Every mutation builds the next state, writes it through the storage backend,
and only then makes it current. A failed write leaves the previous state in
place both in memory and on disk.
"""

import copy
import json
import logging
from typing import List, Optional

from ..interfaces import OverlayStoreInterface, StorageBackend
from ..exceptions import StorageError
from ..mapping.merge_engine import MergeEngine
from ..models import STORE_VERSION, CustomField, OverlayState, SourceRecord, WorkingRecord, utc_timestamp
from .backends import InMemoryStorageBackend


DEFAULT_STORAGE_KEY = "animal_catalog_data"


class OverlayStore(OverlayStoreInterface):
    """
    Durable keyed store of per-record field overrides and additions.

    Invariant: at most one CustomField per (record id, name); writes replace by
    name and keep the position of the field they replace.

    Instances are created once per application context and passed explicitly
    to whatever owns catalog state (see CatalogSession).
    """

    def __init__(self, backend: Optional[StorageBackend] = None,
                 storage_key: str = DEFAULT_STORAGE_KEY,
                 version: str = STORE_VERSION):
        """
        Initialize the overlay store, loading persisted state when present.

        Args:
            backend: Storage backend; defaults to an in-memory backend
            storage_key: Key the JSON blob is stored under
            version: Version tag written into fresh stores
        """
        self.logger = logging.getLogger(__name__)
        self.backend = backend if backend is not None else InMemoryStorageBackend()
        self.storage_key = storage_key
        self.version = version
        self._state = self._load()

    def _load(self) -> OverlayState:
        saved = self.backend.read(self.storage_key)
        if saved is None:
            state = OverlayState(version=self.version)
            self._persist(state)
            self.logger.info(f"Initialized empty overlay store under key '{self.storage_key}'")
            return state

        try:
            state = OverlayState.from_dict(json.loads(saved))
        except ValueError as e:
            # json.JSONDecodeError is a ValueError subclass
            self.logger.warning(f"Stored overlay under '{self.storage_key}' is unreadable ({e}); starting fresh")
            state = OverlayState(version=self.version)
            self._persist(state)
            return state

        self.logger.info(
            f"Loaded overlay store v{state.version} with custom fields for "
            f"{len(state.fields_by_record_id)} record(s)"
        )
        return state

    def _persist(self, state: OverlayState) -> None:
        try:
            text = json.dumps(state.to_dict(), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Overlay store could not be serialized: {e}")
        self.backend.write(self.storage_key, text)

    def _commit(self, state: OverlayState) -> None:
        self._persist(state)
        self._state = state

    def upsert_field(self, record_id: str, custom_field: CustomField) -> None:
        """
        Insert or replace a custom field for a record.

        Args:
            record_id: Record id the field belongs to
            custom_field: Field to store; an existing field with the same name is replaced in place
        """
        record_id = str(record_id)
        state = copy.deepcopy(self._state)
        bucket = state.fields_by_record_id.setdefault(record_id, [])
        stored = CustomField(custom_field.name, custom_field.label, custom_field.value)

        for index, existing in enumerate(bucket):
            if existing.name == stored.name:
                bucket[index] = stored
                break
        else:
            bucket.append(stored)

        self._commit(state)
        self.logger.debug(f"Stored field '{stored.name}' for record {record_id}")

    def remove_field(self, record_id: str, name: str) -> None:
        """Remove a custom field by name; no-op when the record or field is unknown."""
        record_id = str(record_id)
        bucket = self._state.fields_by_record_id.get(record_id)
        if not bucket or not any(f.name == name for f in bucket):
            return

        state = copy.deepcopy(self._state)
        state.fields_by_record_id[record_id] = [f for f in bucket if f.name != name]
        self._commit(state)
        self.logger.debug(f"Removed field '{name}' from record {record_id}")

    def get_fields(self, record_id: str) -> List[CustomField]:
        """Copies of the fields stored for a record, empty list for unknown ids."""
        return [
            CustomField(f.name, f.label, f.value)
            for f in self._state.fields_by_record_id.get(str(record_id), [])
        ]

    def merge_with_source(self, records: List[SourceRecord]) -> List[WorkingRecord]:
        """
        Apply the current overlay to source records.

        Pure with respect to the store: reads state, writes nothing.
        """
        return MergeEngine(self.get_fields).merge(records)

    def clear(self) -> None:
        """Reset to an empty store with a fresh timestamp and the same version tag."""
        self._commit(OverlayState(version=self._state.version, last_sync=utc_timestamp()))
        self.logger.info("Overlay store cleared")

    def touch_sync(self) -> None:
        """Update the last-sync timestamp only."""
        state = copy.deepcopy(self._state)
        state.last_sync = utc_timestamp()
        self._commit(state)

    def last_sync(self) -> str:
        return self._state.last_sync

    def record_ids(self) -> List[str]:
        """Ids of records that have at least one stored field."""
        return [record_id for record_id, fields in self._state.fields_by_record_id.items() if fields]

    def snapshot(self) -> OverlayState:
        """Deep copy of the current state, for diagnostics and tests."""
        return copy.deepcopy(self._state)
