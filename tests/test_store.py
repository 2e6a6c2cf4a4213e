import json

import pytest

from nutriscan.extractors.errors import RecordStoreCorrupt
from nutriscan.extractors.records import ProductRecord
from nutriscan.extractors.store import JsonRecordStore


def test_add_assigns_id_and_timestamp(tmp_path):
    store = JsonRecordStore(tmp_path / "data" / "db.json")
    saved = store.add(ProductRecord(name="ISO100", brand="Dymatize", protein=25.0))

    assert saved.id
    assert saved.created_at
    on_disk = json.loads((tmp_path / "data" / "db.json").read_text(encoding="utf-8"))
    assert on_disk["products"][0]["name"] == "ISO100"
    assert on_disk["products"][0]["createdAt"] == saved.created_at


def test_list_returns_records_in_insertion_order(tmp_path):
    store = JsonRecordStore(tmp_path / "db.json")
    store.add(ProductRecord(name="a"))
    store.add(ProductRecord(name="b", flavor="초코"))

    records = store.list()
    assert [r.name for r in records] == ["a", "b"]
    assert records[1].flavor == "초코"
    assert records[0].id != records[1].id


def test_missing_or_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "db.json"
    store = JsonRecordStore(path)
    assert store.list() == []

    path.write_text("{not json", encoding="utf-8")
    assert store.list() == []

    path.write_text('{"products": {"a": 1}}', encoding="utf-8")
    assert store.list() == []


def test_reads_legacy_file(tmp_path):
    path = tmp_path / "db.json"
    path.write_text(json.dumps({"products": [
        {"id": "1", "name": "컴뱃", "imageUrl": "/uploads/1.png", "createdAt": "2024-01-01T00:00:00Z"},
    ]}), encoding="utf-8")
    (record,) = JsonRecordStore(path).list()
    assert record.image_url == "/uploads/1.png"
    assert record.id == "1"


def test_add_refuses_to_overwrite_unreadable_file(tmp_path):
    path = tmp_path / "db.json"
    original = '{"products": [{"name": "a"}, {"name": "b"}, {"name": "c"},]}'
    path.write_text(original, encoding="utf-8")
    store = JsonRecordStore(path)

    with pytest.raises(RecordStoreCorrupt):
        store.add(ProductRecord(name="new"))

    assert path.read_text(encoding="utf-8") == original
    assert store.list() == []


def test_add_refuses_file_without_products_list(tmp_path):
    path = tmp_path / "db.json"
    path.write_text('{"items": []}', encoding="utf-8")
    with pytest.raises(RecordStoreCorrupt):
        JsonRecordStore(path).add(ProductRecord(name="new"))
    assert path.read_text(encoding="utf-8") == '{"items": []}'
