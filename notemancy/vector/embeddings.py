"""
Embedding generators: note text in, zero or more fixed-length vectors out.
An empty list means no embedding was produced and is not an error.
"""

from abc import ABC, abstractmethod
import hashlib
import threading
from typing import List

import numpy as np

from ..core.config import Settings
from ..core.errors import ConfigurationError, EmbeddingError

EMBEDDING_DTYPE = np.float32


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    # Whether embed() may be called from several worker threads at once
    concurrent_safe = True

    @abstractmethod
    def embed(self, text: str) -> List[np.ndarray]:
        """Generate embedding vectors for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider.

    Derives reproducible vectors from a SHA-256 stream over the text, which
    is useful for testing and offline builds without model downloads.
    Whitespace-only text produces no embedding.
    """

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    def embed(self, text: str) -> List[np.ndarray]:
        if not text.strip():
            return []

        values = []
        counter = 0
        while len(values) < self.dimension:
            digest = hashlib.sha256(f"{counter}:{text}".encode("utf-8")).digest()
            for i in range(0, len(digest), 4):
                value = int.from_bytes(digest[i:i + 4], "big")
                # Map to [-1, 1]
                values.append((value / 2**32) * 2 - 1)
            counter += 1

        return [np.array(values[:self.dimension], dtype=EMBEDDING_DTYPE)]

    def get_dimension(self) -> int:
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    One vector represents the whole note. The model is loaded lazily on
    first use and is not shared across threads.
    """

    concurrent_safe = False

    def __init__(self, model_name: str = "all-MiniLM-L6-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None
        self._lock = threading.Lock()

    @property
    def model(self):
        if self._model is None:
            with self._lock:
                if self._model is None:
                    from sentence_transformers import SentenceTransformer
                    try:
                        self._model = SentenceTransformer(self.model_name)
                    except Exception as e:
                        raise EmbeddingError(f"Failed to load embedding model '{self.model_name}': {e}")
        return self._model

    def embed(self, text: str) -> List[np.ndarray]:
        """Generate a single embedding vector for the note text."""
        if not text.strip():
            return []
        try:
            embedding = self.model.encode(text, convert_to_numpy=True)
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Embedding generation failed: {e}")
        return [np.asarray(embedding, dtype=EMBEDDING_DTYPE)]

    def get_dimension(self) -> int:
        if self._dimension is None:
            self._dimension = int(self.model.get_sentence_embedding_dimension())
        return self._dimension


def get_embedding_provider(settings: Settings) -> IEmbeddingProvider:
    """Get the configured embedding provider implementation."""
    if settings.embed_provider == "hash":
        return DeterministicHashEmbedding(settings.embed_dim)
    elif settings.embed_provider == "sentence-transformers":
        return SentenceTransformerEmbedding(settings.embed_model)
    raise ConfigurationError(f"Unknown embedding provider: {settings.embed_provider}")
