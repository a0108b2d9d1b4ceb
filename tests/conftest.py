"""
Shared fixtures: a temporary configuration root and a small markdown vault.
"""

import os

import pytest
import yaml

from notemancy.core.config import Settings
from notemancy.core.vault import Vault


def write_note(root, relpath, body, title=None):
    """Write a markdown note, optionally with a title in frontmatter."""
    path = root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    if title is not None:
        path.write_text(f"---\ntitle: {title}\ntags: [test]\n---\n{body}", encoding="utf-8")
    else:
        path.write_text(body, encoding="utf-8")
    return path


def write_non_utf8_note(root, name=b"caf\xe9.md"):
    """Create a note whose filename is not valid UTF-8."""
    raw_path = os.path.join(os.fsencode(str(root)), name)
    try:
        with open(raw_path, "wb") as f:
            f.write(b"latin-1 named note")
    except OSError:
        pytest.skip("filesystem rejects non UTF-8 filenames")


@pytest.fixture
def conf_dir(tmp_path):
    path = tmp_path / "conf"
    path.mkdir()
    return path


@pytest.fixture
def vault_dir(tmp_path):
    root = tmp_path / "vault"
    root.mkdir()
    write_note(root, "a.md", "Alpha note body", title="Alpha")
    write_note(root, "projects/meeting.md", "Weekly sync agenda", title="Meeting Notes")
    write_note(root, "zeta.md", "Plain note without frontmatter")
    return root


@pytest.fixture
def settings(conf_dir, vault_dir):
    """Settings with the offline hash embedder and a registered 'work' vault."""
    (conf_dir / "config.yaml").write_text(
        yaml.safe_dump({"vaults": {"work": str(vault_dir)}}), encoding="utf-8"
    )
    return Settings(conf_dir=conf_dir, embed_provider="hash", embed_dim=8)


@pytest.fixture
def vault(vault_dir):
    return Vault(name="work", path=vault_dir)


@pytest.fixture
def cli_env(monkeypatch, settings):
    """Point the CLI at the temporary configuration root."""
    monkeypatch.setenv("NOTEMANCY_CONF_DIR", str(settings.conf_dir))
    monkeypatch.setenv("NOTEMANCY_EMBED_PROVIDER", "hash")
    monkeypatch.setenv("NOTEMANCY_EMBED_DIM", "8")
    monkeypatch.delenv("NOTEMANCY_EMBED_WORKERS", raising=False)
    monkeypatch.delenv("NOTEMANCY_PICKER", raising=False)
    return settings
