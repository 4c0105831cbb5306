"""
Tests du JsonFileSlot (fichier JSON sur disque).
"""
import json
import logging
from datetime import date

from core.models.client import ClientFields, ClientStatus, Contact, Status
from core.services.client_store import STORAGE_KEY, ClientStore
from core.storage import json_slot
from core.storage.json_slot import JsonFileSlot


def sample_fields():
    return ClientFields(
        legal_name="Jane Doe",
        contact=Contact(phone="5551234567", email="jane@example.com", current_address="1 Main St"),
        status=Status(current=ClientStatus.WORK_PERMIT, expiry_date=date(2027, 3, 1)),
    )


class TestJsonFileSlot:

    def test_missing_file_reads_none(self, tmp_path):
        slot = JsonFileSlot(tmp_path / "data", STORAGE_KEY)
        assert slot.read() is None
        assert (tmp_path / "data").is_dir()

    def test_write_then_read(self, tmp_path):
        slot = JsonFileSlot(tmp_path, "clients")
        slot.write("[]")
        assert (tmp_path / "clients.json").read_text(encoding="utf-8") == "[]"
        assert slot.read() == "[]"

    def test_no_temp_files_left(self, tmp_path):
        slot = JsonFileSlot(tmp_path, "clients", backup_enabled=False)
        slot.write("[1]")
        slot.write("[2]")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["clients.json"]

    def test_backups_rotate(self, tmp_path):
        slot = JsonFileSlot(tmp_path, "clients", backup_keep=2)
        for i in range(5):
            slot.write(json.dumps([i]))
        backups = slot.backups()
        assert len(backups) == 2
        assert backups[-1].read_text(encoding="utf-8") == "[3]"

    def test_identical_content_not_rewritten(self, tmp_path):
        slot = JsonFileSlot(tmp_path, "clients")
        slot.write("[1]")
        slot.write("[1]")
        assert slot.backups() == []

    def test_quarantine_copies_file(self, tmp_path):
        slot = JsonFileSlot(tmp_path, "clients")
        (tmp_path / "clients.json").write_text("{oops", encoding="utf-8")
        slot.quarantine()
        assert (tmp_path / "clients.corrupt.json").read_text(encoding="utf-8") == "{oops"

    def test_quarantine_copy_failure_is_logged(self, tmp_path, monkeypatch, caplog):
        def refuse(*args, **kwargs):
            raise PermissionError("read-only")

        monkeypatch.setattr(json_slot.shutil, "copy2", refuse)
        (tmp_path / "clients.json").write_text("{oops", encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="core.storage.json_slot"):
            JsonFileSlot(tmp_path, "clients").quarantine()
        assert "could not copy corrupt slot" in caplog.text
        assert not (tmp_path / "clients.corrupt.json").exists()

    def test_quarantine_without_file(self, tmp_path):
        JsonFileSlot(tmp_path, "clients").quarantine()
        assert not (tmp_path / "clients.corrupt.json").exists()


class TestStoreOnDisk:

    def test_round_trip_through_file(self, tmp_path, clock):
        store = ClientStore(JsonFileSlot(tmp_path, STORAGE_KEY), clock=clock)
        created = store.create(sample_fields())

        reopened = ClientStore(JsonFileSlot(tmp_path, STORAGE_KEY), clock=clock)
        assert reopened.list() == [created]
        assert reopened.get_by_id(created.id).status.expiry_date == date(2027, 3, 1)

    def test_corrupt_file_recovers_when_copy_fails(self, tmp_path, clock, monkeypatch):
        def refuse(*args, **kwargs):
            raise PermissionError("read-only")

        monkeypatch.setattr(json_slot.shutil, "copy2", refuse)
        (tmp_path / f"{STORAGE_KEY}.json").write_text("not json", encoding="utf-8")
        store = ClientStore(JsonFileSlot(tmp_path, STORAGE_KEY, backup_enabled=False), clock=clock)
        assert store.list() == []

    def test_corrupt_file_recovers(self, tmp_path, clock):
        (tmp_path / f"{STORAGE_KEY}.json").write_text("not json", encoding="utf-8")
        store = ClientStore(JsonFileSlot(tmp_path, STORAGE_KEY), clock=clock)
        assert store.list() == []
        assert (tmp_path / f"{STORAGE_KEY}.corrupt.json").exists()

        store.create(sample_fields())
        data = json.loads((tmp_path / f"{STORAGE_KEY}.json").read_text(encoding="utf-8"))
        assert len(data) == 1
