from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Optional

from .errors import PacmanError
from .models import GroupId, PackageId, TargetConfig
from .packages import PackageConfiguration
from .pacman import PackageManagerClient

logger = logging.getLogger(__name__)

ActionCallback = Callable[[str, List[PackageId], int], None]

@dataclass(frozen=True)
class Diff:
    desired: FrozenSet[PackageId]
    installed: FrozenSet[PackageId]  # explicitly installed only

    @property
    def missing(self) -> List[PackageId]:
        return sorted(self.desired - self.installed)

    @property
    def untracked(self) -> List[PackageId]:
        return sorted(self.installed - self.desired)

@dataclass(frozen=True)
class Plan:
    missing_by_group: Dict[GroupId, List[PackageId]]
    checked_untracked: bool = False
    removable: List[PackageId] = field(default_factory=list)
    still_required: Dict[PackageId, List[PackageId]] = field(default_factory=dict)

    @property
    def missing(self) -> List[PackageId]:
        out = set()
        for pkgs in self.missing_by_group.values():
            out.update(pkgs)
        return sorted(out)

@dataclass(frozen=True)
class SyncResult:
    installed: List[PackageId]
    removed: List[PackageId] = field(default_factory=list)
    uninstall_rc: Optional[int] = None

class Reconciler:
    """
    Brings the explicitly installed packages of this machine in line with the
    root groups of one target.
    """

    def __init__(self, packages: PackageConfiguration, target: TargetConfig, client: PackageManagerClient):
        self.packages = packages
        self.target = target
        self.client = client

    def desired(self) -> FrozenSet[PackageId]:
        return frozenset(self.packages.packages_of_groups(self.target.root_groups))

    def diff(self) -> Diff:
        installed = frozenset(self.client.query_installed(explicit=True))
        d = Diff(desired=self.desired(), installed=installed)
        logger.info("desired=%d installed=%d missing=%d untracked=%d",
                    len(d.desired), len(d.installed), len(d.missing), len(d.untracked))
        return d

    def untracked(self) -> List[PackageId]:
        return self.diff().untracked

    def sync(self, remove_untracked: bool = False, on_action: Optional[ActionCallback] = None) -> SyncResult:
        """
        Installs what is missing. With `remove_untracked`, every untracked package is
        uninstalled without a required-by check (pacman -Rs refuses on its own).
        `on_action(action, packages, rc)` is called after every package manager call.
        """
        d = self.diff()
        missing = d.missing
        if missing:
            try:
                self.client.install(missing)
            except PacmanError as e:
                if on_action:
                    on_action("install", missing, e.returncode if e.returncode is not None else 1)
                raise
            if on_action:
                on_action("install", missing, 0)
        else:
            logger.info("nothing to install")
        if not remove_untracked:
            return SyncResult(installed=missing)
        untracked = d.untracked
        if not untracked:
            return SyncResult(installed=missing)
        rc = self.client.uninstall(untracked)
        if on_action:
            on_action("uninstall", untracked, rc)
        if rc != 0:
            logger.warning("uninstall exited with %d", rc)
        return SyncResult(installed=missing, removed=untracked, uninstall_rc=rc)

    def plan(self, remove_untracked: bool = False) -> Plan:
        d = self.diff()
        missing_by_group: Dict[GroupId, List[PackageId]] = {}
        for gid, g in sorted(self.packages.iter_groups(), key=lambda it: it[0]):
            if gid not in self.target.root_groups:
                continue
            pkgs = sorted(g.members - d.installed)
            if pkgs:
                missing_by_group[gid] = pkgs
        if not remove_untracked:
            return Plan(missing_by_group=missing_by_group)

        removable: List[PackageId] = []
        still_required: Dict[PackageId, List[PackageId]] = {}
        untracked = d.untracked
        if untracked:
            for pkg, deps in self.client.required_by(untracked):
                if deps:
                    still_required[pkg] = sorted(deps)
                else:
                    removable.append(pkg)
        return Plan(
            missing_by_group=missing_by_group,
            checked_untracked=True,
            removable=sorted(removable),
            still_required=still_required,
        )
