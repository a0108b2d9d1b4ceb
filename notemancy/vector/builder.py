"""
Vector store build pipeline: enumerate -> read -> embed -> accumulate -> persist.

Policy:
- A note whose generator returns no vectors is skipped with a warning.
- Any read or generation error aborts the whole build; nothing is persisted
  and the previous store file is left untouched.
- Rows are assigned in enumeration order, so identical vault content gives a
  bit-identical store file regardless of worker count.
"""

import os
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from ..core.config import Settings, ensure_conf_dir
from ..core.errors import BuildInProgressError, EmbeddingError, EmptyVaultError, NotemancyError
from ..core.vault import NoteInfo, Vault, list_notes, read_note, resolve_vault
from ..util.logging import logger
from .embeddings import IEmbeddingProvider, get_embedding_provider
from .persistence import remove_store, save
from .store import VectorStore

ProgressCallback = Callable[[str], None]


def _no_progress(message: str) -> None:
    pass


class VectorStoreBuilder:
    """Builds a fresh VectorStore for one vault."""

    def __init__(self, embedding_provider: IEmbeddingProvider,
                 max_workers: int = 1,
                 note_lister: Callable[[Vault], Sequence[NoteInfo]] = list_notes,
                 note_reader: Callable[..., str] = read_note,
                 on_progress: Optional[ProgressCallback] = None):
        self.embedding_provider = embedding_provider
        self.max_workers = max(1, max_workers)
        self.note_lister = note_lister
        self.note_reader = note_reader
        self.on_progress = on_progress or _no_progress

    def _worker_count(self, note_count: int) -> int:
        if not getattr(self.embedding_provider, "concurrent_safe", False):
            return 1
        return max(1, min(self.max_workers, note_count))

    def _embed_note(self, vault: Vault, note: NoteInfo) -> List[np.ndarray]:
        content = self.note_reader(vault, note.relpath, strip_frontmatter=True)
        try:
            return list(self.embedding_provider.embed(content))
        except NotemancyError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Embedding generation failed for note {note.relpath}: {e}")

    def _iter_embeddings(self, vault: Vault, notes: Sequence[NoteInfo]) -> Iterator[Tuple[NoteInfo, List[np.ndarray]]]:
        workers = self._worker_count(len(notes))
        if workers == 1:
            for note in notes:
                yield note, self._embed_note(vault, note)
            return

        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="notemancy-embed")
        try:
            futures = [executor.submit(self._embed_note, vault, note) for note in notes]
            # Consume in submission order so row assignment stays deterministic
            for note, future in zip(notes, futures):
                yield note, future.result()
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    def build(self, vault: Vault) -> VectorStore:
        """
        Build a store for every note in the vault.

        Raises:
            EmptyVaultError: the vault has no notes
            NoteNotFoundError, ReadError, EmbeddingError: a note failed; the build is aborted
        """
        notes = list(self.note_lister(vault))
        if not notes:
            logger.log_build_event(vault.name, "enumerate", "empty")
            raise EmptyVaultError(f"No notes found in vault '{vault.name}'")

        self.on_progress(f"Found {len(notes)} notes")
        logger.log_build_event(vault.name, "enumerate", details={"notes": len(notes)})

        store = VectorStore()
        skipped = 0
        for note, vectors in self._iter_embeddings(vault, notes):
            self.on_progress(f"Processing note: {note.relpath}")
            if not vectors:
                skipped += 1
                self.on_progress(f"  Warning: No embedding generated for note {note.relpath}")
                logger.log_vector_operation("embed", note.relpath, status="skipped")
                continue

            # One vector represents the whole note
            index = store.add(note.relpath, vectors[0])
            logger.log_vector_operation("embed", note.relpath, {"row": index})

        logger.log_build_event(vault.name, "embed", details={"rows": len(store), "skipped": skipped})
        return store


def _lock_holder_alive(lock_path: Path) -> bool:
    """True unless the lock file names a process that no longer exists."""
    try:
        pid = int(lock_path.read_text(encoding="ascii").strip())
    except FileNotFoundError:
        return False
    except (OSError, ValueError):
        # Unreadable or still being written by its holder
        return True

    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Alive, owned by another user
        pass
    return True


def _acquire_lock_file(lock_path: Path) -> int:
    return os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)


@contextmanager
def build_lock(settings: Settings, vault_name: str):
    """
    Hold the per-vault build lock file for the duration of a build.

    A lock left behind by a process that has died is replaced.
    """
    lock_path = settings.lock_path(vault_name)
    try:
        fd = _acquire_lock_file(lock_path)
    except FileExistsError:
        if _lock_holder_alive(lock_path):
            raise BuildInProgressError(
                f"A build for vault '{vault_name}' is already running (lock file {lock_path})"
            )
        logger.warning(f"Removing stale build lock {lock_path}")
        try:
            os.unlink(lock_path)
        except FileNotFoundError:
            pass
        try:
            fd = _acquire_lock_file(lock_path)
        except FileExistsError:
            raise BuildInProgressError(
                f"A build for vault '{vault_name}' is already running (lock file {lock_path})"
            )
    try:
        os.write(fd, str(os.getpid()).encode("ascii"))
    finally:
        os.close(fd)

    try:
        yield lock_path
    finally:
        try:
            os.unlink(lock_path)
        except FileNotFoundError:
            pass


def vectorize_vault(settings: Settings, vault_name: str,
                    embedding_provider: Optional[IEmbeddingProvider] = None,
                    on_progress: Optional[ProgressCallback] = None,
                    vault: Optional[Vault] = None) -> Optional[Path]:
    """
    Rebuild and persist the vector store for a vault.

    A vault with zero notes (or zero embeddable notes) produces no file and any
    previous store for it is removed. Otherwise the new store atomically
    replaces the old one.

    Returns:
        Path of the written store, or None when nothing was indexable

    Raises:
        EmptyVaultError: vault has no notes (callers treat as success)
        BuildInProgressError: another build holds the vault lock
    """
    progress = on_progress or _no_progress
    progress(f"Vectorizing notes in vault '{vault_name}'...")

    if vault is None:
        vault = resolve_vault(settings, vault_name)
    ensure_conf_dir(settings)
    store_name = settings.store_name(vault_name)

    if embedding_provider is None:
        embedding_provider = get_embedding_provider(settings)

    builder = VectorStoreBuilder(
        embedding_provider,
        max_workers=settings.embed_workers,
        on_progress=progress,
    )

    with build_lock(settings, vault_name):
        logger.log_build_event(vault_name, "start", details={"store": store_name})
        try:
            store = builder.build(vault)
        except EmptyVaultError:
            remove_store(settings.conf_dir, store_name)
            raise
        except NotemancyError as e:
            logger.log_build_event(vault_name, "abort", "failed", {"error": str(e)})
            raise

        if len(store) == 0:
            progress("No embeddings were generated")
            remove_store(settings.conf_dir, store_name)
            logger.log_build_event(vault_name, "finish", details={"rows": 0})
            return None

        path = save(settings.conf_dir, store_name, store)

    progress(f"Vector store created and saved as '{store_name}' ({len(store)} notes)")
    progress(f"Location: {path}")
    logger.log_build_event(vault_name, "finish", details={"rows": len(store), "path": str(path)})
    return path
