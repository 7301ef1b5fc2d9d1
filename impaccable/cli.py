from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Callable, Dict, List, Optional

from .config import (
    APP_NAME,
    ConfigManager,
    cache_home,
    package_dir_of,
    resolve_config_path,
    resolve_target_path,
    template_config,
)
from .distro import generate_configuration, get_system_configuration
from .errors import (
    Aborted,
    ActiveTargetFileNotFound,
    ConfigFileNotFound,
    DeserializeError,
    ImpaccableError,
    TargetNotFound,
)
from .history import log_history, parse_history
from .logging_utils import configure_logging
from .models import Config, GroupId, PackageGroup, PackageId
from .packages import PackageConfiguration
from .pacman import PackageManagerClient, PacmanClient
from .prompts import Prompter, TextualPrompter
from .reconcile import Plan, Reconciler
from .store import dump_toml, loads_toml, write_text
from .target import ActiveTarget

logger = logging.getLogger(__name__)

NEW_GROUP = "<new group>"
NEW_FILE = "<new file>"
BOOTSTRAP_FILE = "groups.toml"

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog=APP_NAME, description="A mildly declarative pacman wrapper")
    ap.add_argument("--config", default=None, help="Path to config.toml (env: IMPACCABLE_CONFIG)")
    ap.add_argument("--target-file", default=None, help="Path to the active target file (env: IMPACCABLE_TARGET)")
    ap.add_argument("--log-file", default=None, help="Path to the debug log")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="More console output (-v, -vv)")

    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("config", help="Show the configuration")

    sp = sub.add_parser("sync", help="Sync the active target with the package configuration")
    sp.add_argument("--remove-untracked", action="store_true", help="Also uninstall untracked packages")

    sp = sub.add_parser("plan", help="Show what sync would do")
    sp.add_argument("--remove-untracked", action="store_true", help="Also list untracked packages safe to remove")

    sp = sub.add_parser("add", help="Add packages to a group")
    sp.add_argument("packages", nargs="+")
    sp.add_argument("-g", "--group", required=True)

    sp = sub.add_parser("remove", help="Remove a package from a group")
    sp.add_argument("package")
    sp.add_argument("-g", "--group", required=True)

    tp = sub.add_parser("target", help="Manage the active target")
    tsub = tp.add_subparsers(dest="target_command", required=True)
    tsub.add_parser("ls", help="List all targets")
    tsub.add_parser("get", help="Print the active target")
    sp = tsub.add_parser("set", help="Set the active target")
    sp.add_argument("target")
    sp.add_argument("-f", "--force", action="store_true", help="Accept a target missing from the config")

    gp = sub.add_parser("groups", help="Inspect groups")
    gsub = gp.add_subparsers(dest="groups_command", required=True)
    gsub.add_parser("ls", help="List all groups")

    sub.add_parser("import", help="Interactively add untracked packages to groups")
    sub.add_parser("template", help="Generate a package file from your distro's package lists")
    sub.add_parser("history", help="Show logged package manager actions")
    return ap

class Cli:
    def __init__(
        self,
        config_path: str,
        target_path: str,
        prompter: Prompter,
        client: PackageManagerClient,
        history_path: str,
    ):
        self.config_path = config_path
        self.target_path = target_path
        self.prompter = prompter
        self.client = client
        self.history_path = history_path
        self._manager: Optional[ConfigManager] = None
        self._active: Optional[ActiveTarget] = None

    # ---------- loading ----------
    def manager(self) -> ConfigManager:
        if self._manager is None:
            try:
                self._manager = ConfigManager.parse(self.config_path)
            except ConfigFileNotFound:
                self._manager = self._first_run_config()
        return self._manager

    def active_target(self) -> ActiveTarget:
        if self._active is None:
            try:
                self._active = ActiveTarget.load(self.target_path)
            except ActiveTargetFileNotFound:
                self._active = self._first_run_target()
        return self._active

    def _first_run_config(self) -> ConfigManager:
        path = self.config_path
        print(f"No config file found at {path}")
        if not self.prompter.confirm("Create config", f"No config file at {path}.\nCreate a new one?"):
            raise Aborted("No config file found and creation of a new one declined")
        text = self.prompter.edit("New config", dump_toml(path, template_config().to_table()))
        if text is None:
            raise Aborted("Config file creation aborted")
        try:
            config = Config.from_table(loads_toml(text, path))
        except ValueError as e:
            raise DeserializeError(path, str(e)) from e
        write_text(path, text)

        package_dir = package_dir_of(path, config)
        os.makedirs(package_dir, exist_ok=True)
        packages = PackageConfiguration.parse(package_dir)
        wanted = set()
        for t in config.targets.values():
            wanted |= t.root_groups
        missing = sorted(wanted - packages.group_ids())
        if missing:
            packages.create_file(BOOTSTRAP_FILE, {gid: PackageGroup() for gid in missing})
        logger.info("created config %s", path)
        return ConfigManager.parse(path)

    def _first_run_target(self) -> ActiveTarget:
        targets = sorted(self.manager().targets)
        print(f"No active target file found at {self.target_path}")
        if not targets:
            raise Aborted("No targets configured, cannot select an active target")
        choice = self.prompter.select_one("Select the active target", targets)
        if choice is None:
            raise Aborted("Target selection aborted")
        return ActiveTarget.create(self.target_path, choice)

    def reconciler(self) -> Reconciler:
        m = self.manager()
        target = m.target(self.active_target().get())
        return Reconciler(m.package_config, target, self.client)

    # ---------- commands ----------
    def cmd_config(self, args) -> int:
        m = self.manager()
        print(f"config file: {m.config_path}")
        print(f"package dir: {m.package_dir}")
        print()
        print(m.render(), end="")
        return 0

    def cmd_sync(self, args) -> int:
        def record(action: str, packages: List[PackageId], rc: int) -> None:
            log_history(self.history_path, action, packages, rc)

        result = self.reconciler().sync(remove_untracked=args.remove_untracked, on_action=record)
        if result.installed:
            print(f"Installed: {' '.join(result.installed)}")
        else:
            print("Nothing to install.")
        if args.remove_untracked:
            if result.removed:
                print(f"Removed: {' '.join(result.removed)}")
            else:
                print("No untracked packages.")
        if result.uninstall_rc:
            print(f"{APP_NAME}: uninstall failed (rc={result.uninstall_rc})", file=sys.stderr)
            return 1
        return 0

    def cmd_plan(self, args) -> int:
        print_plan(self.reconciler().plan(remove_untracked=args.remove_untracked))
        return 0

    def cmd_add(self, args) -> int:
        self.manager().package_config.add_packages(args.packages, args.group)
        print(f"Added {' '.join(sorted(set(args.packages)))} to {args.group}")
        return 0

    def cmd_remove(self, args) -> int:
        self.manager().package_config.remove_package(args.package, args.group)
        print(f"Removed {args.package} from {args.group}")
        return 0

    def cmd_target(self, args) -> int:
        m = self.manager()
        if args.target_command == "ls":
            try:
                active = ActiveTarget.load(self.target_path).get()
            except ActiveTargetFileNotFound:
                active = None
            for name in sorted(m.targets):
                print(f"{name} (active)" if name == active else name)
            return 0
        if args.target_command == "get":
            print(self.active_target().get())
            return 0
        # set
        if args.target not in m.targets and not args.force:
            raise TargetNotFound(args.target)
        if os.path.exists(self.target_path):
            ActiveTarget.load(self.target_path).set(args.target)
        else:
            ActiveTarget.create(self.target_path, args.target)
        print(f"Active target: {args.target}")
        return 0

    def cmd_groups(self, args) -> int:
        pc = self.manager().package_config
        for gid, g in sorted(pc.iter_groups(), key=lambda it: it[0]):
            rel = os.path.relpath(pc.owner_of(gid) or "", pc.package_dir)
            print(f"{gid}\t{rel}\t({len(g.members)} packages)")
        return 0

    def cmd_import(self, args) -> int:
        m = self.manager()
        target_id = self.active_target().get()
        untracked = self.reconciler().untracked()
        if not untracked:
            print("No untracked packages.")
            return 0
        chosen = self.prompter.select_many(f"Untracked packages on {target_id}", untracked)
        if not chosen:
            print("Nothing selected.")
            return 0

        pc = m.package_config
        group = self.prompter.select_one(f"Add {len(chosen)} package(s) to group", sorted(pc.group_ids()) + [NEW_GROUP])
        if group is None:
            raise Aborted("Group selection aborted")
        if group == NEW_GROUP:
            group = self._create_group_interactive(pc)

        pc.add_packages(chosen, group)
        print(f"Added {' '.join(sorted(chosen))} to {group}")

        if group not in m.target(target_id).root_groups:
            if self.prompter.confirm("Root group", f"Add `{group}` to the root groups of target `{target_id}`?"):
                m.add_root_group(target_id, group)
                print(f"Added {group} to root groups of {target_id}")
        return 0

    def _create_group_interactive(self, pc: PackageConfiguration) -> GroupId:
        name = self.prompter.text_input("Name of the new group", "group name")
        if not name:
            raise Aborted("No group name given")
        files = sorted(os.path.relpath(p, pc.package_dir) for p in pc.files)
        choice = self.prompter.select_one(f"Package file for `{name}`", files + [NEW_FILE])
        if choice is None:
            raise Aborted("File selection aborted")
        if choice == NEW_FILE:
            file_name = self.prompter.text_input("Name of the new package file", "file name")
            if not file_name:
                raise Aborted("No file name given")
            if not file_name.endswith(".toml"):
                file_name += ".toml"
            path = pc.create_file(file_name)
        else:
            path = pc.abspath(choice)
        pc.create_group(name, path)
        return name

    def cmd_template(self, args) -> int:
        system = get_system_configuration()
        print(f"System configuration: {system}")
        groups = generate_configuration(system)
        path = self.manager().package_config.create_file(f"{system.distro}.toml", groups)
        print(f"Wrote {len(groups)} groups to {path}")
        return 0

    def cmd_history(self, args) -> int:
        for e in parse_history(self.history_path):
            print(f"{e['ts']}  {e['action']}  rc={e['rc']}  {' '.join(e['cmds'])}")
        return 0

    def dispatch(self, args) -> int:
        handlers: Dict[str, Callable[..., int]] = {
            "config": self.cmd_config,
            "sync": self.cmd_sync,
            "plan": self.cmd_plan,
            "add": self.cmd_add,
            "remove": self.cmd_remove,
            "target": self.cmd_target,
            "groups": self.cmd_groups,
            "import": self.cmd_import,
            "template": self.cmd_template,
            "history": self.cmd_history,
        }
        return handlers[args.command](args)

def print_plan(plan: Plan) -> None:
    if plan.missing_by_group:
        print("Missing packages:")
        for gid, pkgs in plan.missing_by_group.items():
            print(f"  [{gid}]")
            for p in pkgs:
                print(f"    {p}")
    else:
        print("All declared packages are installed.")
    if not plan.checked_untracked:
        return
    if plan.removable:
        print("Untracked packages safe to remove:")
        for p in plan.removable:
            print(f"    {p}")
    else:
        print("No untracked packages safe to remove.")
    if plan.still_required:
        print("Untracked packages still required by other packages:")
        for p, deps in plan.still_required.items():
            print(f"    {p} (required by: {', '.join(deps)})")

def _level(verbose: int) -> int:
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING

def main(
    argv: Optional[List[str]] = None,
    prompter: Optional[Prompter] = None,
    client: Optional[PackageManagerClient] = None,
) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(_level(args.verbose), args.log_file or os.path.join(cache_home(), f"{APP_NAME}.log"))

    cli = Cli(
        config_path=resolve_config_path(args.config),
        target_path=resolve_target_path(args.target_file),
        prompter=prompter or TextualPrompter(),
        client=client or PacmanClient(),
        history_path=os.path.join(cache_home(), "history.log"),
    )
    try:
        return cli.dispatch(args)
    except ImpaccableError as e:
        logger.debug("command %s failed", args.command, exc_info=True)
        print(f"{APP_NAME}: {e}", file=sys.stderr)
        if e.__cause__ is not None and not isinstance(e.__cause__, FileNotFoundError):
            print(f"  caused by: {e.__cause__}", file=sys.stderr)
        return 1

if __name__ == "__main__":
    raise SystemExit(main())
