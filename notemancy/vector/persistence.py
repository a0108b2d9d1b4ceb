"""
Store persistence: one binary file per vault at <directory>/<store_name>.bin.

Layout (little-endian):
    magic "NMVS" | version u16 | dimension u32 | count u64
    count x dimension float32 payload
    maps length u64 | maps JSON (index_to_id and id_to_index, both written out)
    sha256 of everything above (32 bytes)

Saves go to a temporary file in the same directory and are moved into place
with os.replace, so a failed save never disturbs the previous store.
"""

import hashlib
import json
import os
import struct
import tempfile
from pathlib import Path
from typing import Union

import numpy as np

from ..core.config import STORE_EXTENSION
from ..core.errors import CorruptStoreError, StoreIOError
from ..util.logging import logger
from .store import VectorStore

MAGIC = b"NMVS"
FORMAT_VERSION = 1
HEADER = struct.Struct("<4sHIQ")
LENGTH = struct.Struct("<Q")
CHECKSUM_SIZE = 32
PAYLOAD_DTYPE = np.dtype("<f4")


def store_file_path(directory: Union[str, Path], store_name: str) -> Path:
    return Path(directory) / f"{store_name}{STORE_EXTENSION}"


def serialize_store(store: VectorStore) -> bytes:
    """Encode a validated store into the binary file format."""
    store.validate()
    matrix = store.embeddings
    count = len(store)
    dimension = store.dimension or 0

    maps = {
        "index_to_id": [[i, store.index_to_id[i]] for i in range(count)],
        "id_to_index": [[k, store.id_to_index[k]] for k in sorted(store.id_to_index)],
    }
    try:
        maps_bytes = json.dumps(maps, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    except UnicodeEncodeError as e:
        raise StoreIOError(f"Note identity cannot be stored as UTF-8: {e}") from e

    body = b"".join([
        HEADER.pack(MAGIC, FORMAT_VERSION, dimension, count),
        matrix.astype(PAYLOAD_DTYPE, copy=False).tobytes(order="C"),
        LENGTH.pack(len(maps_bytes)),
        maps_bytes,
    ])
    return body + hashlib.sha256(body).digest()


def deserialize_store(data: bytes) -> VectorStore:
    """Decode and validate a store.

    Raises:
        CorruptStoreError: on any structural or integrity failure
    """
    if len(data) < HEADER.size + LENGTH.size + CHECKSUM_SIZE:
        raise CorruptStoreError("Store file is truncated")

    body, checksum = data[:-CHECKSUM_SIZE], data[-CHECKSUM_SIZE:]
    if hashlib.sha256(body).digest() != checksum:
        raise CorruptStoreError("Store checksum mismatch")

    magic, version, dimension, count = HEADER.unpack_from(body, 0)
    if magic != MAGIC:
        raise CorruptStoreError("Not a notemancy vector store")
    if version != FORMAT_VERSION:
        raise CorruptStoreError(f"Unsupported store format version {version}")

    offset = HEADER.size
    payload_size = count * dimension * PAYLOAD_DTYPE.itemsize
    if len(body) < offset + payload_size + LENGTH.size:
        raise CorruptStoreError("Store payload is truncated")

    if payload_size:
        matrix = np.frombuffer(body, dtype=PAYLOAD_DTYPE, count=count * dimension, offset=offset)
        matrix = matrix.reshape(count, dimension).astype(np.float32)
    else:
        matrix = np.zeros((count, dimension), dtype=np.float32)
    offset += payload_size

    (maps_size,) = LENGTH.unpack_from(body, offset)
    offset += LENGTH.size
    if len(body) != offset + maps_size:
        raise CorruptStoreError("Store identity maps have the wrong length")

    try:
        maps = json.loads(body[offset:].decode("utf-8"))
        index_to_id = {int(i): str(note_id) for i, note_id in maps["index_to_id"]}
        id_to_index = {str(note_id): int(i) for note_id, i in maps["id_to_index"]}
    except (ValueError, KeyError, TypeError) as e:
        raise CorruptStoreError(f"Store identity maps are unreadable: {e}")

    return VectorStore.from_arrays(matrix, index_to_id, id_to_index)


def save(directory: Union[str, Path], store_name: str, store: VectorStore) -> Path:
    """
    Persist a store, atomically replacing any previous version.

    Returns:
        Path of the written store file

    Raises:
        StoreIOError: on any write failure
    """
    directory = Path(directory)
    target = store_file_path(directory, store_name)
    data = serialize_store(store)

    tmp_path = None
    try:
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=f".{store_name}.", suffix=".tmp")
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, target)
        tmp_path = None
    except OSError as e:
        logger.log_store_event("save", str(target), "failed", {"error": str(e)})
        raise StoreIOError(f"Failed to write vector store {target}: {e}")
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)

    logger.log_store_event("save", str(target), details={"count": len(store), "dimension": store.dimension})
    return target


def load(directory: Union[str, Path], store_name: str) -> VectorStore:
    """
    Load and validate a persisted store.

    Raises:
        StoreIOError: file missing or unreadable
        CorruptStoreError: integrity check failed
    """
    target = store_file_path(directory, store_name)
    try:
        data = target.read_bytes()
    except OSError as e:
        raise StoreIOError(f"Failed to read vector store {target}: {e}")

    try:
        store = deserialize_store(data)
    except CorruptStoreError as e:
        logger.log_store_event("load", str(target), "corrupt", {"error": str(e)})
        raise

    logger.log_store_event("load", str(target), details={"count": len(store), "dimension": store.dimension})
    return store


def remove_store(directory: Union[str, Path], store_name: str) -> bool:
    """Delete a persisted store. Returns True if a file was removed."""
    target = store_file_path(directory, store_name)
    try:
        target.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise StoreIOError(f"Failed to remove vector store {target}: {e}")
    logger.log_store_event("remove", str(target))
    return True
