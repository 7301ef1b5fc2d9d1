from impaccable.history import log_history, parse_history


def test_history_roundtrip_newest_first(tmp_path):
    path = str(tmp_path / "cache" / "history.log")
    log_history(path, "install", ["git", "vim"], 0)
    log_history(path, "uninstall", ["steam"], 1)

    entries = parse_history(path)
    assert [e["action"] for e in entries] == ["uninstall", "install"]
    assert entries[0]["rc"] == 1
    assert entries[1]["cmds"] == ["git", "vim"]


def test_history_missing_file(tmp_path):
    assert parse_history(str(tmp_path / "none.log")) == []
