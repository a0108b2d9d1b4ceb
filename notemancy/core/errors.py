"""
Error taxonomy for notemancy.
Every error propagates unmodified to the CLI boundary; nothing here retries.
"""


class NotemancyError(Exception):
    """Base class for all notemancy errors."""
    pass


class ConfigurationError(NotemancyError):
    """Storage root or vault configuration is missing or invalid."""
    pass


class VaultNotFoundError(ConfigurationError):
    """Vault name is not present in config.yaml or its directory is missing."""
    pass


class EmptyVaultError(NotemancyError):
    """Vault has no notes. Callers treat this as nothing to do, not a failure."""
    pass


class NoteNotFoundError(NotemancyError):
    """Relpath no longer exists inside the vault."""
    pass


class ReadError(NotemancyError):
    """Note content could not be read; aborts a build."""
    pass


class EmbeddingError(NotemancyError):
    """Embedding generation failed or produced an unusable vector; aborts a build."""
    pass


class StoreIOError(NotemancyError, OSError):
    """Writing or reading the store file failed."""
    pass


class CorruptStoreError(NotemancyError):
    """Store failed its integrity check (maps not inverse, counts disagree, bad payload)."""
    pass


class DuplicateNoteError(CorruptStoreError):
    """A note identity was added to a store twice."""
    pass


class BuildInProgressError(NotemancyError):
    """Another build already holds the lock for this vault."""
    pass


class NoSelectionError(NotemancyError):
    """User cancelled the picker or the matcher returned nothing."""
    pass


class MalformedSelectionError(NotemancyError):
    """Selected display line does not split into exactly a title and a relpath."""
    pass
