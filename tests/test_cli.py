import os

from conftest import FakeClient, ScriptedPrompter

from impaccable.cli import main
from impaccable.config import ConfigManager
from impaccable.history import parse_history
from impaccable.packages import PackageConfiguration
from impaccable.target import ActiveTarget


def run(config_path, target_path, *args, prompter=None, client=None):
    argv = ["--config", str(config_path), "--target-file", str(target_path), *args]
    return main(argv, prompter=prompter or ScriptedPrompter(), client=client or FakeClient())


def test_config_shows_paths_and_targets(config_path, target_path, package_dir, capsys):
    assert run(config_path, target_path, "config") == 0
    out = capsys.readouterr().out
    assert f"package dir: {package_dir}" in out
    assert "[targets.laptop]" in out


def test_sync_installs_missing(config_path, target_path, capsys, tmp_path):
    client = FakeClient(explicit=["bash", "linux", "git", "firefox"])
    assert run(config_path, target_path, "sync", client=client) == 0
    assert client.installed_calls == [["neovim", "pacman"]]
    assert client.uninstalled_calls == []
    assert "Installed: neovim pacman" in capsys.readouterr().out

    history = parse_history(str(tmp_path / "xdg-cache" / "impaccable" / "history.log"))
    assert history[0]["action"] == "install"
    assert history[0]["cmds"] == ["neovim", "pacman"]


def test_sync_remove_untracked(config_path, target_path):
    client = FakeClient(explicit=["bash", "linux", "pacman", "git", "neovim", "firefox"])
    assert run(config_path, target_path, "sync", "--remove-untracked", client=client) == 0
    assert client.installed_calls == []
    assert client.uninstalled_calls == [["firefox"]]


def test_sync_failed_uninstall_exits_nonzero(config_path, target_path):
    client = FakeClient(explicit=["bash", "linux", "pacman", "git", "neovim", "firefox"], uninstall_rc=1)
    assert run(config_path, target_path, "sync", "--remove-untracked", client=client) == 1


def test_plan_prints_per_group(config_path, target_path, capsys):
    client = FakeClient(explicit=["bash", "git", "firefox", "libx"], required_by={"libx": ["firefox"]})
    assert run(config_path, target_path, "plan", "--remove-untracked", client=client) == 0
    out = capsys.readouterr().out
    assert "[base]" in out and "linux" in out and "pacman" in out
    assert "[dev]" in out and "neovim" in out
    assert "[games]" not in out
    assert "safe to remove:\n    firefox" in out
    assert "libx (required by: firefox)" in out
    assert client.installed_calls == [] and client.uninstalled_calls == []


def test_add_and_remove(config_path, target_path, package_dir):
    assert run(config_path, target_path, "add", "htop", "btop", "-g", "base") == 0
    pc = PackageConfiguration.parse(str(package_dir))
    assert {"htop", "btop"} <= pc.group("base").members

    assert run(config_path, target_path, "remove", "htop", "-g", "base") == 0
    assert "htop" not in PackageConfiguration.parse(str(package_dir)).group("base").members


def test_errors_exit_nonzero(config_path, target_path, capsys):
    assert run(config_path, target_path, "remove", "htop", "-g", "base") == 1
    assert "Package `htop` not found in group `base`" in capsys.readouterr().err
    assert run(config_path, target_path, "add", "htop", "-g", "nope") == 1
    assert "Group `nope` not found" in capsys.readouterr().err


def test_target_commands(config_path, target_path, capsys):
    assert run(config_path, target_path, "target", "ls") == 0
    assert capsys.readouterr().out.splitlines() == ["laptop (active)", "server"]

    assert run(config_path, target_path, "target", "set", "server") == 0
    assert ActiveTarget.load(str(target_path)).get() == "server"

    capsys.readouterr()
    assert run(config_path, target_path, "target", "get") == 0
    assert capsys.readouterr().out.strip() == "server"


def test_target_set_validates_unless_forced(config_path, target_path):
    assert run(config_path, target_path, "target", "set", "desktop") == 1
    assert ActiveTarget.load(str(target_path)).get() == "laptop"
    assert run(config_path, target_path, "target", "set", "desktop", "--force") == 0
    assert ActiveTarget.load(str(target_path)).get() == "desktop"


def test_sync_with_unknown_active_target(config_path, target_path, capsys):
    target_path.write_text('target = "desktop"\n', encoding="utf-8")
    assert run(config_path, target_path, "sync") == 1
    assert "Target `desktop` not found" in capsys.readouterr().err


def test_groups_ls(config_path, target_path, capsys):
    assert run(config_path, target_path, "groups", "ls") == 0
    lines = capsys.readouterr().out.splitlines()
    assert [ln.split("\t")[0] for ln in lines] == ["base", "dev", "games"]
    assert lines[1].split("\t")[1] == os.path.join("more", "dev.toml")


def test_missing_active_target_is_selected_and_saved(config_path, tmp_path, capsys):
    target_path = tmp_path / "fresh" / "active-target.toml"
    prompter = ScriptedPrompter(selects=["server"])
    assert run(config_path, target_path, "target", "get", prompter=prompter) == 0
    assert capsys.readouterr().out.strip().endswith("server")
    assert ActiveTarget.load(str(target_path)).get() == "server"


def test_missing_active_target_selection_cancelled(config_path, tmp_path):
    target_path = tmp_path / "fresh" / "active-target.toml"
    assert run(config_path, target_path, "target", "get", prompter=ScriptedPrompter(selects=[None])) == 1
    assert not target_path.exists()


def test_first_run_creates_config_and_groups(tmp_path, monkeypatch):
    monkeypatch.setattr("impaccable.config.read_hostname", lambda: "box")
    config_path = tmp_path / "new" / "config.toml"
    target_path = tmp_path / "new" / "active-target.toml"
    prompter = ScriptedPrompter(confirms=[True], edits=[...], selects=["box"])

    assert run(config_path, target_path, "target", "get", prompter=prompter) == 0
    m = ConfigManager.parse(str(config_path))
    assert m.target("box").root_groups == {"awesome_software"}
    assert m.package_config.owner_of("awesome_software") == str(tmp_path / "new" / "packages" / "groups.toml")
    assert ActiveTarget.load(str(target_path)).get() == "box"


def test_first_run_declined(tmp_path):
    config_path = tmp_path / "new" / "config.toml"
    assert run(config_path, tmp_path / "t.toml", "config", prompter=ScriptedPrompter(confirms=[False])) == 1
    assert not config_path.exists()


def test_import_into_existing_group(config_path, target_path, package_dir):
    client = FakeClient(explicit=["bash", "linux", "pacman", "git", "neovim", "firefox", "htop"])
    prompter = ScriptedPrompter(multi=[["firefox"]], selects=["dev"])
    assert run(config_path, target_path, "import", prompter=prompter, client=client) == 0
    assert "firefox" in PackageConfiguration.parse(str(package_dir)).group("dev").members


def test_import_into_new_group_and_file(config_path, target_path, package_dir):
    client = FakeClient(explicit=["bash", "linux", "pacman", "git", "neovim", "firefox", "htop"])
    prompter = ScriptedPrompter(
        multi=[["firefox", "htop"]],
        selects=["<new group>", "<new file>"],
        texts=["desktop", "desktop"],
        confirms=[True],
    )
    assert run(config_path, target_path, "import", prompter=prompter, client=client) == 0

    m = ConfigManager.parse(str(config_path))
    assert m.package_config.group("desktop").members == {"firefox", "htop"}
    assert m.package_config.owner_of("desktop") == str(package_dir / "desktop.toml")
    assert "desktop" in m.target("laptop").root_groups


def test_import_nothing_untracked(config_path, target_path, capsys):
    client = FakeClient(explicit=["bash"])
    assert run(config_path, target_path, "import", client=client) == 0
    assert "No untracked packages." in capsys.readouterr().out


def test_history_command(config_path, target_path, capsys):
    client = FakeClient(explicit=["bash", "linux", "pacman", "git"])
    run(config_path, target_path, "sync", client=client)
    capsys.readouterr()
    assert run(config_path, target_path, "history") == 0
    assert "install  rc=0  neovim" in capsys.readouterr().out


def test_broken_package_file_link_reports_error(config_path, target_path, package_dir, capsys):
    os.symlink(str(package_dir / "gone.toml"), str(package_dir / "dangling.toml"))
    assert run(config_path, target_path, "groups", "ls") == 1
    err = capsys.readouterr().err
    assert err.startswith("impaccable: I/O failure on")
    assert "dangling.toml" in err
