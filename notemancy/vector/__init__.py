"""
Semantic indexing pipeline: embedding generators, the vector store,
its persistence and the vault build pipeline.
"""

from .embeddings import IEmbeddingProvider, DeterministicHashEmbedding, SentenceTransformerEmbedding, get_embedding_provider
from .store import VectorStore
from .persistence import save, load, remove_store
from .builder import VectorStoreBuilder, vectorize_vault

__all__ = [
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'get_embedding_provider',
    'VectorStore',
    'save',
    'load',
    'remove_store',
    'VectorStoreBuilder',
    'vectorize_vault',
]
