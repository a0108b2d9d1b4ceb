"""
Vector store for a vault: an N x D embedding matrix plus the bidirectional
note identity mapping.

Rows are assigned on successful embedding. index_to_id and id_to_index are
always updated together, so they stay exact inverses of each other.
"""

import threading
from typing import Dict, List, Optional

import numpy as np

from ..core.errors import CorruptStoreError, DuplicateNoteError, EmbeddingError
from .embeddings import EMBEDDING_DTYPE


class VectorStore:
    """In-memory vector store with a stable note identity mapping."""

    def __init__(self, dimension: Optional[int] = None):
        """
        Args:
            dimension: Embedding dimension. When None it is fixed by the first added vector.
        """
        self.dimension = dimension
        self.index_to_id: Dict[int, str] = {}
        self.id_to_index: Dict[str, int] = {}
        self._rows: List[np.ndarray] = []
        self._matrix: Optional[np.ndarray] = None
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, note_id: str) -> bool:
        return note_id in self.id_to_index

    @property
    def embeddings(self) -> np.ndarray:
        """The stacked N x D matrix."""
        if self._matrix is None:
            if self._rows:
                self._matrix = np.stack(self._rows, axis=0)
            else:
                self._matrix = np.zeros((0, self.dimension or 0), dtype=EMBEDDING_DTYPE)
        return self._matrix

    def add(self, note_id: str, vector) -> int:
        """
        Append one row for note_id and return its index.

        Raises:
            DuplicateNoteError: note_id already has a row
            EmbeddingError: vector is not 1-D or its length differs from the store dimension
        """
        row = np.asarray(vector, dtype=EMBEDDING_DTYPE)
        if row.ndim != 1 or row.shape[0] == 0:
            raise EmbeddingError(f"Embedding for '{note_id}' must be a non-empty 1-D vector, got shape {row.shape}")

        with self._lock:
            if note_id in self.id_to_index:
                raise DuplicateNoteError(f"Note '{note_id}' is already in the store")

            if self.dimension is None:
                self.dimension = int(row.shape[0])
            elif row.shape[0] != self.dimension:
                raise EmbeddingError(
                    f"Vector dimension {row.shape[0]} for '{note_id}' does not match store dimension {self.dimension}"
                )

            index = len(self._rows)
            self._rows.append(row)
            # Both maps move together
            self.index_to_id[index] = note_id
            self.id_to_index[note_id] = index
            self._matrix = None
            return index

    def get_vector(self, note_id: str) -> np.ndarray:
        """Return the embedding row for a note."""
        return self._rows[self.id_to_index[note_id]]

    def note_ids(self) -> List[str]:
        """Note identities in row order."""
        return [self.index_to_id[i] for i in range(len(self._rows))]

    def validate(self) -> None:
        """
        Check the store invariants.

        Raises:
            CorruptStoreError: maps are not mutual inverses or counts disagree
        """
        validate_mapping(len(self._rows), self.index_to_id, self.id_to_index)

    @classmethod
    def from_arrays(cls, matrix: np.ndarray, index_to_id: Dict[int, str],
                    id_to_index: Dict[str, int]) -> "VectorStore":
        """Rebuild a store from a matrix and both maps, validating them first."""
        if matrix.ndim != 2:
            raise CorruptStoreError(f"Embedding matrix must be 2-D, got shape {matrix.shape}")
        validate_mapping(matrix.shape[0], index_to_id, id_to_index)

        store = cls(dimension=int(matrix.shape[1]))
        store._rows = [row for row in matrix.astype(EMBEDDING_DTYPE, copy=False)]
        store.index_to_id = dict(index_to_id)
        store.id_to_index = dict(id_to_index)
        store._matrix = matrix.astype(EMBEDDING_DTYPE, copy=False)
        return store


def validate_mapping(count: int, index_to_id: Dict[int, str], id_to_index: Dict[str, int]) -> None:
    """Verify both maps cover exactly rows 0..count-1 and invert each other."""
    if len(index_to_id) != count or len(id_to_index) != count:
        raise CorruptStoreError(
            f"Row count {count} disagrees with map sizes "
            f"(index_to_id={len(index_to_id)}, id_to_index={len(id_to_index)})"
        )

    for index in range(count):
        if index not in index_to_id:
            raise CorruptStoreError(f"Row {index} has no note identity")
        note_id = index_to_id[index]
        if id_to_index.get(note_id) != index:
            raise CorruptStoreError(f"Identity maps disagree for row {index} ('{note_id}')")

    for note_id, index in id_to_index.items():
        if index_to_id.get(index) != note_id:
            raise CorruptStoreError(f"Identity maps disagree for note '{note_id}'")
