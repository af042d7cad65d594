import json

from pathlib import Path

import pytest

from stymie.efs import main


@pytest.fixture
def run(store, monkeypatch):
    monkeypatch.setenv("EDITOR", "true")
    base = ["--root", str(store.root), "--passphrase", store.passphrase]

    def _run(*argv):
        return main([*base, *argv])

    return _run


def test_init_via_cli(tmp_path, capsys):
    root = tmp_path / "store"
    code = main(["--root", str(root), "--passphrase", "pw", "init", "-t", "1", "-m", "8", "-p", "1"])
    assert code == 0
    assert "[+] Initialized store" in capsys.readouterr().out
    assert main(["--root", str(root), "--passphrase", "pw", "init", "-t", "1", "-m", "8", "-p", "1"]) == 1
    assert "--force" in capsys.readouterr().err


def test_gpg_init_needs_recipient(tmp_path, monkeypatch, capsys):
    monkeypatch.delenv("STYMIE_PASSPHRASE", raising=False)
    assert main(["--root", str(tmp_path / "s"), "init"]) == 1
    assert "--recipient" in capsys.readouterr().err


def test_add_list_export(run, capsys):
    assert run("add", "/notes/fp/curry", "-m", "f(a)(b)") == 0
    assert run("add", "/notes/ml/") == 0
    assert run("add", "/notes/zz") == 0
    capsys.readouterr()

    assert run("list", "/notes") == 0
    assert capsys.readouterr().out.splitlines() == ["fp/", "ml/", "zz"]

    assert run("export", "/notes/fp/curry") == 0
    assert capsys.readouterr().out == "f(a)(b)"

    assert run("export", "/notes", "--contents") == 0
    assert json.loads(capsys.readouterr().out) == {"/notes/fp/curry": "f(a)(b)", "/notes/zz": ""}


def test_add_from_stdin(run, monkeypatch, capsys):
    import io

    fake = io.TextIOWrapper(io.BytesIO(b"from stdin"))
    monkeypatch.setattr("sys.stdin", fake)
    assert run("add", "/s", "--stdin") == 0
    capsys.readouterr()
    run("export", "/s")
    assert capsys.readouterr().out == "from stdin"


def test_errors_exit_non_zero_with_one_line(run, capsys):
    run("add", "/x")
    capsys.readouterr()
    assert run("add", "/x") == 1
    err = capsys.readouterr().err.strip().splitlines()
    assert len(err) == 1
    assert err[0].startswith("[!]")

    assert run("has", "/nope") == 1
    assert run("get", "/nope") == 1


def test_has_get_mv_rm_rmdir(run, capsys):
    run("add", "/notes/a", "-m", "hello")
    run("add", "/archive/")
    assert run("has", "/notes/a") == 0
    assert run("get", "/notes/a") == 0
    assert run("mv", "/notes/a", "/archive/") == 0
    assert run("has", "/archive/a") == 0
    assert run("rmdir", "/archive") == 1
    assert run("rm", "/archive/a", "-y") == 0
    assert run("rmdir", "/archive") == 0
    capsys.readouterr()
    assert run("ls") == 0
    assert capsys.readouterr().out.splitlines() == ["notes/"]


def test_import_and_export_to_file(run, tmp_path, capsys):
    src = tmp_path / "todo.txt"
    src.write_text("milk")
    run("add", "/lists/")
    assert run("import", str(src), "/lists") == 0
    out = tmp_path / "out.txt"
    assert run("export", "/lists/todo.txt", "-o", str(out)) == 0
    assert out.read_text() == "milk"


def test_verify(run, store, capsys):
    run("add", "/a", "-m", "x")
    assert run("verify") == 0
    for blob in (store.root / "s").iterdir():
        blob.unlink()
    assert run("verify") == 1
    assert "Dangling entry: /a" in capsys.readouterr().err


def test_missing_passphrase(store, monkeypatch, capsys):
    monkeypatch.delenv("STYMIE_PASSPHRASE", raising=False)
    assert main(["--root", str(store.root), "list"]) == 1
    assert "passphrase" in capsys.readouterr().err


def test_export_to_missing_directory_is_one_line_error(run, tmp_path, capsys):
    assert run("add", "/a", "-m", "x") == 0
    capsys.readouterr()
    assert run("export", "/a", "-o", str(tmp_path / "nope" / "out")) == 1
    err = capsys.readouterr().err
    assert err.startswith("[!] Could not write")
    assert "Traceback" not in err


def test_unreadable_import_is_one_line_error(run, tmp_path, monkeypatch, capsys):
    src = tmp_path / "secret.txt"
    src.write_bytes(b"x")
    real_read = Path.read_bytes

    def read_bytes(self):
        if self == src:
            raise PermissionError(13, "Permission denied", str(self))
        return real_read(self)

    monkeypatch.setattr(Path, "read_bytes", read_bytes)
    assert run("import", str(src)) == 1
    assert "[!] Could not read" in capsys.readouterr().err
    monkeypatch.undo()
    assert run("has", "/secret.txt") == 1


def test_bad_timeout_env_is_one_line_error(store, monkeypatch, capsys):
    monkeypatch.setenv("STYMIE_TIMEOUT", "soon")
    assert main(["--root", str(store.root), "--passphrase", store.passphrase, "list"]) == 1
    assert "STYMIE_TIMEOUT" in capsys.readouterr().err


def test_rm_without_yes_asks_first(run, monkeypatch, capsys):
    assert run("add", "/a", "-m", "x") == 0
    monkeypatch.setattr("builtins.input", lambda prompt="": "n")
    assert run("rm", "/a") == 0
    assert "[*] No removal" in capsys.readouterr().out
    assert run("has", "/a") == 0
