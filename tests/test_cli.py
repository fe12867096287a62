import json

from digrams import cli
from digrams.tools.persistence.lock_file import LockFile


def run(store_path, *argv):
    return cli.main(["--file", str(store_path), *argv])


def test_record_then_show_raw(store_path, capsys):
    assert run(store_path, "record", "--context", "text-mode", "a", "b", "c", "b", "c") == cli.EXIT_OK
    out = capsys.readouterr().out
    assert f"Recorded 4 digrams from 5 events into {store_path}" in out
    assert not (store_path.parent / "digrams.lock").exists()

    assert run(store_path, "show", "--format", "raw") == cli.EXIT_OK
    assert capsys.readouterr().out.splitlines() == ["2 b c", "1 a b", "1 c b"]


def test_record_from_file_and_contexts(store_path, tmp_path, capsys):
    session = tmp_path / "session.log"
    session.write_text("# recorded session\ntext-mode a\ntext-mode b\n\nprog-mode c\n")
    assert run(store_path, "record", "--from", str(session)) == cli.EXIT_OK
    capsys.readouterr()
    assert run(store_path, "contexts") == cli.EXIT_OK
    assert capsys.readouterr().out.splitlines() == ["prog-mode", "text-mode"]


def test_record_requires_context(store_path, capsys):
    assert run(store_path, "record", "a", "b") == cli.EXIT_ABORTED
    assert "--context is required" in capsys.readouterr().err


def test_malformed_event_lines_fail(store_path, tmp_path, capsys):
    session = tmp_path / "session.log"
    session.write_text("just-one-field\n")
    assert run(store_path, "record", "--from", str(session)) == cli.EXIT_FAILED
    assert "expected 'CONTEXT EVENT'" in capsys.readouterr().err


def test_show_json_and_output_file(store_path, tmp_path, capsys):
    run(store_path, "record", "--context", "text-mode", "a", "b")
    capsys.readouterr()
    assert run(store_path, "show", "--format", "json", "--context", "text-mode") == cli.EXIT_OK
    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "SUCCESS"
    assert payload["records"] == [{"predecessor": "a", "event": "b", "count": 1, "percentage": 100.0}]

    target = tmp_path / "report.txt"
    assert run(store_path, "show", "--output", str(target)) == cli.EXIT_OK
    assert target.read_text().startswith("Digrams across all contexts: 1 digrams, 1 shown")


def test_show_threshold_and_order(store_path, capsys):
    run(store_path, "record", "--context", "c", "a", "b", "a", "b", "x")
    capsys.readouterr()
    assert run(store_path, "show", "--format", "raw", "--threshold", "1") == cli.EXIT_OK
    assert capsys.readouterr().out.splitlines() == ["2 a b"]
    assert run(store_path, "show", "--format", "raw", "--order", "ascending") == cli.EXIT_OK
    assert capsys.readouterr().out.splitlines()[-1] == "2 a b"


def test_reset_full_partial_and_aborted(store_path, other_pid, monkeypatch, capsys):
    run(store_path, "record", "--context", "c", "a", "b")
    monkeypatch.setattr("builtins.input", lambda prompt: "n")
    assert run(store_path, "reset") == cli.EXIT_ABORTED
    assert store_path.exists()

    holder = LockFile(store_path.with_name(store_path.name + ".lock"), pid=other_pid)
    holder.try_claim()
    assert run(store_path, "reset", "--yes") == cli.EXIT_PARTIAL
    assert store_path.exists()
    holder.release()

    assert run(store_path, "reset", "--yes") == cli.EXIT_OK
    assert not store_path.exists()
    assert "Digram statistics reset" in capsys.readouterr().out


def test_corrupt_store_exit_code(store_path, capsys):
    store_path.write_text("(((a . b) . c) . 1)\n")
    assert run(store_path, "show") == cli.EXIT_CORRUPT
    assert "Corrupt digram store" in capsys.readouterr().err


def test_invalid_environment_is_a_config_error(store_path, monkeypatch, capsys):
    monkeypatch.setenv("DIGRAMS_AUTOSAVE_INTERVAL", "soon")
    assert run(store_path, "contexts") == cli.EXIT_ABORTED
    assert "config error" in capsys.readouterr().err


def test_show_json_refuses_invalid_export(store_path, monkeypatch, capsys):
    run(store_path, "record", "--context", "text-mode", "a", "b")
    capsys.readouterr()
    monkeypatch.setattr("digrams.utils.envelope.validate_envelope", lambda env: False)
    assert run(store_path, "show", "--format", "json") == cli.EXIT_FAILED
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "export schema" in captured.err
