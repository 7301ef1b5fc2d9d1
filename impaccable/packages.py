from __future__ import annotations
import logging
import os
from typing import Dict, Iterable, Iterator, Optional, Set, Tuple

from .errors import (
    DeserializeError,
    DuplicateGroupError,
    GroupAlreadyExists,
    GroupNotFound,
    PackageDirNotFound,
    PackageFileAlreadyExists,
    PackageFileNotFound,
    PackageFileOutsidePackageDir,
    PackageNotFound,
    StorageError,
)
from .models import (
    GroupId,
    PackageFile,
    PackageGroup,
    PackageGroupMap,
    PackageId,
    groups_from_table,
    groups_to_table,
)
from .store import read_toml, write_toml

logger = logging.getLogger(__name__)

def parse_group_file(path: str) -> PackageGroupMap:
    try:
        doc = read_toml(path)
    except FileNotFoundError as e:
        # listed by the directory walk but unreadable, e.g. a dangling symlink
        raise StorageError(path, "file vanished or is a broken link") from e
    try:
        return groups_from_table(doc)
    except ValueError as e:
        raise DeserializeError(path, str(e)) from e

class PackageConfiguration:
    """
    All group files below the package directory, indexed by absolute path.

    The file map is the only index. The file owning a group is found by scanning,
    so there is nothing to keep in sync on mutation. Group ids are unique across files.
    Every mutation rewrites the owning file before returning; the in-memory state
    only changes once that write succeeded.
    """

    def __init__(self, package_dir: str):
        self.package_dir = os.path.abspath(package_dir)
        self.files: Dict[str, PackageFile] = {}

    @classmethod
    def parse(cls, package_dir: str) -> "PackageConfiguration":
        conf = cls(package_dir)
        if not os.path.isdir(conf.package_dir):
            raise PackageDirNotFound(conf.package_dir)
        for root, dirs, names in os.walk(conf.package_dir):
            dirs.sort()
            for name in sorted(names):
                path = os.path.join(root, name)
                conf._track(path, PackageFile(parse_group_file(path)))
        logger.info("parsed %d package files from %s", len(conf.files), conf.package_dir)
        return conf

    # ---------- lookup ----------
    def abspath(self, path: str) -> str:
        if not os.path.isabs(path):
            path = os.path.join(self.package_dir, path)
        return os.path.normpath(path)

    def owner_of(self, group_id: GroupId) -> Optional[str]:
        for path, package_file in self.files.items():
            if group_id in package_file.groups:
                return path
        return None

    def group(self, group_id: GroupId) -> PackageGroup:
        path = self.owner_of(group_id)
        if path is None:
            raise GroupNotFound(group_id)
        return self.files[path].groups[group_id]

    def has_group(self, group_id: GroupId) -> bool:
        return self.owner_of(group_id) is not None

    def iter_groups(self) -> Iterator[Tuple[GroupId, PackageGroup]]:
        for package_file in self.files.values():
            yield from package_file.groups.items()

    def group_ids(self) -> Set[GroupId]:
        return {gid for gid, _ in self.iter_groups()}

    def packages_of_groups(self, group_ids: Iterable[GroupId]) -> Set[PackageId]:
        wanted = set(group_ids)
        out: Set[PackageId] = set()
        for gid, g in self.iter_groups():
            if gid in wanted:
                out |= g.members
        return out

    # ---------- mutation ----------
    def create_file(self, path: str, groups: Optional[PackageGroupMap] = None) -> str:
        """
        Tracks a new package file (empty unless `groups` is given) and writes it.
        Returns the absolute path.
        """
        path = self.abspath(path)
        if os.path.commonpath([path, self.package_dir]) != self.package_dir:
            raise PackageFileOutsidePackageDir(path, self.package_dir)
        if path in self.files:
            raise PackageFileAlreadyExists(path)
        for gid in groups or {}:
            owner = self.owner_of(gid)
            if owner is not None:
                raise GroupAlreadyExists(gid, owner)
        self._commit(path, dict(groups or {}))
        logger.info("created package file %s", path)
        return path

    def create_group(self, group_id: GroupId, path: str) -> None:
        path = self.abspath(path)
        package_file = self.files.get(path)
        if package_file is None:
            raise PackageFileNotFound(path)
        owner = self.owner_of(group_id)
        if owner is not None:
            raise GroupAlreadyExists(group_id, owner)
        self._commit(path, {**package_file.groups, group_id: PackageGroup()})
        logger.info("created group %s in %s", group_id, path)

    def add_packages(self, packages: Iterable[PackageId], group_id: GroupId) -> None:
        path = self.owner_of(group_id)
        if path is None:
            raise GroupNotFound(group_id)
        g = self.files[path].groups[group_id]
        self._replace_group(path, group_id, PackageGroup(g.members | set(packages), g.accept_indirect))

    def remove_package(self, package_id: PackageId, group_id: GroupId) -> None:
        path = self.owner_of(group_id)
        if path is None:
            raise GroupNotFound(group_id)
        g = self.files[path].groups[group_id]
        if package_id not in g.members:
            raise PackageNotFound(package_id, group_id)
        self._replace_group(path, group_id, PackageGroup(g.members - {package_id}, g.accept_indirect))

    # ---------- persistence ----------
    def write_file(self, path: str) -> None:
        package_file = self.files.get(path)
        if package_file is None:
            raise PackageFileNotFound(path)
        write_toml(path, groups_to_table(package_file.groups))

    def _replace_group(self, path: str, group_id: GroupId, group: PackageGroup) -> None:
        self._commit(path, {**self.files[path].groups, group_id: group})

    def _commit(self, path: str, groups: PackageGroupMap) -> None:
        write_toml(path, groups_to_table(groups))
        self.files[path] = PackageFile(groups)

    def _track(self, path: str, package_file: PackageFile) -> None:
        if path in self.files:
            raise PackageFileAlreadyExists(path)
        for gid in package_file.groups:
            owner = self.owner_of(gid)
            if owner is not None:
                raise DuplicateGroupError(gid, path, owner)
        self.files[path] = package_file
