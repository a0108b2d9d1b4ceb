"""
Command line tests: each subcommand driven through main() against a temporary vault.
"""

import pytest
from unittest.mock import patch

from notemancy.cli import _vault_or_default, main
from notemancy.core.errors import ConfigurationError
from notemancy.vector.persistence import load

from conftest import write_non_utf8_note


def test_vectorize_prints_progress(cli_env, capsys):
    assert main(["vectorize", "work"]) == 0

    out = capsys.readouterr().out
    assert "Vectorizing notes in vault 'work'..." in out
    assert "Found 3 notes" in out
    assert "Processing note: projects/meeting.md" in out
    assert "Vector store created and saved as 'work_vectors' (3 notes)" in out
    assert len(load(cli_env.conf_dir, "work_vectors")) == 3


def test_vectorize_with_workers(cli_env):
    assert main(["vectorize", "work", "--workers", "3"]) == 0
    assert cli_env.store_path("work").exists()


def test_vectorize_rejects_zero_workers(cli_env, capsys):
    assert main(["vectorize", "work", "--workers", "0"]) == 1
    assert "Error:" in capsys.readouterr().err


def test_vectorize_empty_vault_exits_zero(cli_env, vault_dir, capsys):
    for note in vault_dir.rglob("*.md"):
        note.unlink()

    assert main(["vectorize", "work"]) == 0
    assert not cli_env.store_path("work").exists()
    assert "work" in capsys.readouterr().out


def test_vectorize_uses_default_vault(cli_env):
    main(["set", "work"])

    assert main(["vectorize"]) == 0
    assert cli_env.store_path("work").exists()


def test_vectorize_without_default_vault(cli_env, capsys):
    assert main(["vectorize"]) == 1

    err = capsys.readouterr().err
    assert "No default vault set" in err
    assert "notemancy vectorize <vault_name>" in err


def test_unknown_vault(cli_env, capsys):
    assert main(["vectorize", "nope"]) == 1
    assert "Error: Unknown vault 'nope'" in capsys.readouterr().err


def test_missing_conf_dir(monkeypatch, capsys):
    monkeypatch.delenv("NOTEMANCY_CONF_DIR", raising=False)

    assert main(["init"]) == 1
    assert "Error:" in capsys.readouterr().err


def test_pick_filter_prints_path(cli_env, vault_dir, capsys):
    assert main(["pick", "@work", "--filter", "meeting"]) == 0

    assert capsys.readouterr().out.strip() == str(vault_dir / "projects" / "meeting.md")


def test_pick_filter_without_match(cli_env, capsys):
    assert main(["pick", "work", "--filter", "zzzzqqq"]) == 1
    assert "No note selected" in capsys.readouterr().err


def test_pick_edit_launches_editor(cli_env, vault_dir, monkeypatch):
    monkeypatch.setenv("EDITOR", "myeditor --wait")
    with patch("notemancy.cli.subprocess.run") as run:
        assert main(["pick", "work", "-f", "alpha", "--edit"]) == 0

    run.assert_called_once_with(["myeditor", "--wait", str(vault_dir / "a.md")])


def test_no_command_picks_from_default_vault(cli_env, vault_dir, monkeypatch, capsys):
    main(["set", "work"])
    capsys.readouterr()

    with patch("notemancy.selection.pickers.TextualPicker.pick", return_value="Alpha | a.md"):
        assert main([]) == 0

    assert capsys.readouterr().out.strip() == str(vault_dir / "a.md")


def test_info_after_vectorize(cli_env, capsys):
    main(["vectorize", "work"])
    capsys.readouterr()

    assert main(["info", "work"]) == 0

    out = capsys.readouterr().out
    assert "Notes: 3" in out
    assert "Dimension: 8" in out


def test_info_without_store(cli_env, capsys):
    assert main(["info", "work"]) == 1
    assert "notemancy vectorize work" in capsys.readouterr().out


def test_set_and_cd(cli_env, vault_dir, capsys):
    assert main(["set", "work"]) == 0
    assert cli_env.default_vault_file.read_text(encoding="utf-8") == "work"

    assert main(["cd", "work"]) == 0
    assert capsys.readouterr().out.splitlines()[-1] == str(vault_dir)


def test_init_creates_config(monkeypatch, tmp_path, capsys):
    conf = tmp_path / "fresh"
    monkeypatch.setenv("NOTEMANCY_CONF_DIR", str(conf))

    assert main(["init"]) == 0
    assert (conf / "config.yaml").exists()
    assert str(conf / "config.yaml") in capsys.readouterr().out


@pytest.mark.parametrize("argv", [["--help"], ["pick", "--help"]])
def test_help_exits_cleanly(argv):
    with pytest.raises(SystemExit) as exc:
        main(argv)
    assert exc.value.code == 0


def test_vectorize_invalid_frontmatter_date_reports_error(cli_env, vault_dir, capsys):
    (vault_dir / "bad.md").write_text("---\ndate: 2024-02-30\n---\nbody", encoding="utf-8")

    assert main(["vectorize", "work"]) == 1

    err = capsys.readouterr().err
    assert "Error: Invalid frontmatter in note 'bad.md'" in err
    assert "Traceback" not in err
    assert not cli_env.store_path("work").exists()


def test_pick_with_invalid_frontmatter_date(cli_env, vault_dir, capsys):
    (vault_dir / "bad.md").write_text("---\ndate: 2024-02-30\n---\nbody", encoding="utf-8")

    assert main(["pick", "work", "--filter", "alpha"]) == 0
    assert capsys.readouterr().out.strip() == str(vault_dir / "a.md")


def test_vectorize_skips_non_utf8_filename(cli_env, vault_dir):
    write_non_utf8_note(vault_dir)

    assert main(["vectorize", "work"]) == 0
    assert load(cli_env.conf_dir, "work_vectors").note_ids() == ["a.md", "projects/meeting.md", "zeta.md"]


def test_missing_default_vault_keeps_cause(cli_env):
    with pytest.raises(ConfigurationError) as exc:
        _vault_or_default(cli_env, None, "pick")

    assert "notemancy pick <vault_name>" in str(exc.value)
    assert isinstance(exc.value.__cause__, ConfigurationError)
