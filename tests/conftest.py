from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

BASE_TOML = """\
[base]
members = ["bash", "linux", "pacman"]
"""

DEV_TOML = """\
[dev]
members = ["git", "neovim"]

[games]
members = ["steam"]
accept_indirect = true
"""

CONFIG_TOML = """\
package_dir = "./packages"

[targets.laptop]
root_groups = ["base", "dev"]

[targets.server]
root_groups = ["base"]
"""


class FakeClient:
    """Stands in for pacman: canned package sets, records every call."""

    def __init__(
        self,
        explicit: Sequence[str] = (),
        all_installed: Sequence[str] = (),
        required_by: Optional[Dict[str, List[str]]] = None,
        uninstall_rc: int = 0,
    ):
        self.explicit = set(explicit)
        self.all_installed = set(all_installed) | self.explicit
        self.required = dict(required_by or {})
        self.uninstall_rc = uninstall_rc
        self.installed_calls: List[List[str]] = []
        self.uninstalled_calls: List[List[str]] = []
        self.required_by_calls: List[List[str]] = []

    def query_installed(self, explicit: bool):
        return set(self.explicit if explicit else self.all_installed)

    def install(self, packages):
        self.installed_calls.append(list(packages))

    def uninstall(self, packages):
        self.uninstalled_calls.append(list(packages))
        return self.uninstall_rc

    def required_by(self, packages):
        pkgs = list(packages)
        self.required_by_calls.append(pkgs)
        return [(p, list(self.required.get(p, []))) for p in pkgs]


class ScriptedPrompter:
    """Answers prompts from queues, in the order they are asked."""

    def __init__(self, confirms=(), selects=(), multi=(), texts=(), edits=()):
        self.confirms = list(confirms)
        self.selects = list(selects)
        self.multi = list(multi)
        self.texts = list(texts)
        self.edits = list(edits)
        self.asked: List[str] = []

    def confirm(self, title, body):
        self.asked.append(title)
        return self.confirms.pop(0)

    def select_one(self, title, options):
        self.asked.append(title)
        answer = self.selects.pop(0)
        assert answer is None or answer in options, f"{answer!r} not offered in {options!r}"
        return answer

    def select_many(self, title, options):
        self.asked.append(title)
        answer = self.multi.pop(0)
        assert set(answer) <= set(options)
        return answer

    def text_input(self, title, placeholder=""):
        self.asked.append(title)
        return self.texts.pop(0)

    def edit(self, title, text):
        self.asked.append(title)
        answer = self.edits.pop(0)
        return text if answer is ... else answer


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))
    monkeypatch.delenv("IMPACCABLE_CONFIG", raising=False)
    monkeypatch.delenv("IMPACCABLE_TARGET", raising=False)


@pytest.fixture
def package_dir(tmp_path) -> Path:
    d = tmp_path / "conf" / "packages"
    (d / "more").mkdir(parents=True)
    (d / "base.toml").write_text(BASE_TOML, encoding="utf-8")
    (d / "more" / "dev.toml").write_text(DEV_TOML, encoding="utf-8")
    return d


@pytest.fixture
def config_path(package_dir) -> Path:
    p = package_dir.parent / "config.toml"
    p.write_text(CONFIG_TOML, encoding="utf-8")
    return p


@pytest.fixture
def target_path(config_path) -> Path:
    p = config_path.parent / "active-target.toml"
    p.write_text('target = "laptop"\n', encoding="utf-8")
    return p
