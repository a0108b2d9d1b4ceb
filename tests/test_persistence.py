"""
Store persistence tests: exact round trip, atomic replacement and load-time integrity checks.
"""

import hashlib
import json
import os

import numpy as np
import pytest
from unittest.mock import patch

from notemancy.core.errors import CorruptStoreError, StoreIOError
from notemancy.vector import persistence
from notemancy.vector.persistence import (
    CHECKSUM_SIZE,
    HEADER,
    LENGTH,
    load,
    remove_store,
    save,
    serialize_store,
    store_file_path,
)
from notemancy.vector.store import VectorStore


@pytest.fixture
def store():
    s = VectorStore()
    s.add("a.md", [1.0, 0.0, 0.5])
    s.add("projects/b.md", [0.0, 1.0, -0.25])
    s.add("notes/ünïcode.md", [0.1, 0.2, 0.3])
    return s


def _reseal(body: bytes) -> bytes:
    return body + hashlib.sha256(body).digest()


def test_save_load_round_trip_exact(tmp_path, store):
    path = save(tmp_path, "work_vectors", store)
    loaded = load(tmp_path, "work_vectors")

    assert path == tmp_path / "work_vectors.bin"
    assert loaded.dimension == 3
    assert len(loaded) == 3
    assert np.array_equal(loaded.embeddings, store.embeddings)
    assert loaded.embeddings.tobytes() == store.embeddings.tobytes()
    assert loaded.index_to_id == store.index_to_id
    assert loaded.id_to_index == store.id_to_index
    loaded.validate()


def test_float_values_preserved_bit_for_bit(tmp_path):
    s = VectorStore()
    vector = np.array([np.pi, -1e-30, 3.4e38, 1.0 / 3.0], dtype=np.float32)
    s.add("x.md", vector)

    save(tmp_path, "v", s)

    assert load(tmp_path, "v").get_vector("x.md").tobytes() == vector.tobytes()


def test_serialization_is_deterministic(store):
    assert serialize_store(store) == serialize_store(store)


def test_save_replaces_previous_store(tmp_path, store):
    save(tmp_path, "work_vectors", store)

    smaller = VectorStore()
    smaller.add("only.md", [1.0, 1.0])
    save(tmp_path, "work_vectors", smaller)

    loaded = load(tmp_path, "work_vectors")
    assert loaded.note_ids() == ["only.md"]
    assert loaded.dimension == 2


def test_save_leaves_no_temporary_files(tmp_path, store):
    save(tmp_path, "work_vectors", store)

    assert sorted(os.listdir(tmp_path)) == ["work_vectors.bin"]


def test_failed_save_keeps_previous_store(tmp_path, store):
    save(tmp_path, "work_vectors", store)
    original = store_file_path(tmp_path, "work_vectors").read_bytes()

    other = VectorStore()
    other.add("new.md", [0.5, 0.5])
    with patch.object(persistence.os, "replace", side_effect=OSError("disk full")):
        with pytest.raises(StoreIOError, match="disk full"):
            save(tmp_path, "work_vectors", other)

    assert store_file_path(tmp_path, "work_vectors").read_bytes() == original
    assert sorted(os.listdir(tmp_path)) == ["work_vectors.bin"]


def test_store_io_error_is_os_error(tmp_path, store):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(OSError):
        save(blocker, "work_vectors", store)


def test_load_missing_file(tmp_path):
    with pytest.raises(StoreIOError):
        load(tmp_path, "missing_vectors")


def test_load_detects_checksum_mismatch(tmp_path, store):
    path = save(tmp_path, "work_vectors", store)
    data = bytearray(path.read_bytes())
    data[HEADER.size] ^= 0xFF
    path.write_bytes(bytes(data))

    with pytest.raises(CorruptStoreError, match="checksum"):
        load(tmp_path, "work_vectors")


def test_load_detects_truncated_file(tmp_path):
    (tmp_path / "t_vectors.bin").write_bytes(b"NMVS")

    with pytest.raises(CorruptStoreError, match="truncated"):
        load(tmp_path, "t_vectors")


def test_load_rejects_foreign_file(tmp_path):
    body = HEADER.pack(b"XXXX", 1, 0, 0) + LENGTH.pack(2) + b"{}"
    (tmp_path / "f_vectors.bin").write_bytes(_reseal(body))

    with pytest.raises(CorruptStoreError, match="Not a notemancy"):
        load(tmp_path, "f_vectors")


def _rewrite_maps(data: bytes, store: VectorStore, maps: dict) -> bytes:
    """Replace the maps section of a serialized store and reseal the checksum."""
    prefix_size = HEADER.size + len(store) * store.dimension * 4
    maps_bytes = json.dumps(maps).encode("utf-8")
    body = data[:prefix_size] + LENGTH.pack(len(maps_bytes)) + maps_bytes
    return _reseal(body)


def test_load_rejects_non_inverse_maps(tmp_path, store):
    data = serialize_store(store)
    maps = {
        "index_to_id": [[0, "a.md"], [1, "projects/b.md"], [2, "notes/ünïcode.md"]],
        "id_to_index": [["a.md", 1], ["projects/b.md", 0], ["notes/ünïcode.md", 2]],
    }
    (tmp_path / "bad_vectors.bin").write_bytes(_rewrite_maps(data, store, maps))

    with pytest.raises(CorruptStoreError, match="disagree"):
        load(tmp_path, "bad_vectors")


def test_load_rejects_count_mismatch(tmp_path, store):
    data = serialize_store(store)
    maps = {
        "index_to_id": [[0, "a.md"], [1, "projects/b.md"]],
        "id_to_index": [["a.md", 0], ["projects/b.md", 1]],
    }
    (tmp_path / "bad_vectors.bin").write_bytes(_rewrite_maps(data, store, maps))

    with pytest.raises(CorruptStoreError, match="Row count"):
        load(tmp_path, "bad_vectors")


def test_load_rejects_unreadable_maps(tmp_path, store):
    data = serialize_store(store)
    prefix_size = HEADER.size + len(store) * store.dimension * 4
    body = data[:prefix_size] + LENGTH.pack(3) + b"{{{"
    (tmp_path / "bad_vectors.bin").write_bytes(_reseal(body))

    with pytest.raises(CorruptStoreError, match="unreadable"):
        load(tmp_path, "bad_vectors")


def test_empty_store_round_trip(tmp_path):
    save(tmp_path, "empty_vectors", VectorStore())
    loaded = load(tmp_path, "empty_vectors")

    assert len(loaded) == 0
    assert loaded.embeddings.shape[0] == 0


def test_remove_store(tmp_path, store):
    save(tmp_path, "work_vectors", store)

    assert remove_store(tmp_path, "work_vectors") is True
    assert remove_store(tmp_path, "work_vectors") is False
    assert not store_file_path(tmp_path, "work_vectors").exists()


def test_file_layout_trailer(tmp_path, store):
    path = save(tmp_path, "work_vectors", store)
    data = path.read_bytes()

    magic, version, dimension, count = HEADER.unpack_from(data, 0)
    assert (magic, version, dimension, count) == (b"NMVS", 1, 3, 3)
    assert hashlib.sha256(data[:-CHECKSUM_SIZE]).digest() == data[-CHECKSUM_SIZE:]


def test_unencodable_note_id_raises_store_io_error(tmp_path):
    s = VectorStore()
    s.add("caf\udce9.md", [1.0, 0.0])

    with pytest.raises(StoreIOError, match="UTF-8"):
        save(tmp_path, "work_vectors", s)

    assert os.listdir(tmp_path) == []
