from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set

PackageId = str
GroupId = str
TargetId = str

GROUP_KEYS = ("members", "accept_indirect")

@dataclass
class PackageGroup:
    members: Set[PackageId] = field(default_factory=set)
    accept_indirect: Optional[bool] = None  # reserved, not used for reconciliation

    @classmethod
    def from_members(cls, members: Iterable[PackageId]) -> "PackageGroup":
        return cls(members=set(members))

    def sorted_members(self) -> List[PackageId]:
        return sorted(self.members)

    def to_table(self) -> Dict[str, Any]:
        table: Dict[str, Any] = {"members": self.sorted_members()}
        if self.accept_indirect is not None:
            table["accept_indirect"] = self.accept_indirect
        return table

    @classmethod
    def from_table(cls, table: Any) -> "PackageGroup":
        """
        Raises ValueError describing the first structural problem found.
        """
        if not isinstance(table, dict):
            raise ValueError("group must be a table")
        unknown = [k for k in table if k not in GROUP_KEYS]
        if unknown:
            raise ValueError(f"unknown keys {unknown}")
        members = table.get("members", [])
        if not isinstance(members, list) or not all(isinstance(m, str) for m in members):
            raise ValueError("`members` must be an array of strings")
        accept_indirect = table.get("accept_indirect")
        if accept_indirect is not None and not isinstance(accept_indirect, bool):
            raise ValueError("`accept_indirect` must be a boolean")
        return cls(members=set(members), accept_indirect=accept_indirect)

PackageGroupMap = Dict[GroupId, PackageGroup]

def groups_to_table(groups: PackageGroupMap) -> Dict[str, Any]:
    return {gid: groups[gid].to_table() for gid in sorted(groups)}

def groups_from_table(doc: Dict[str, Any]) -> PackageGroupMap:
    out: PackageGroupMap = {}
    for gid, table in doc.items():
        try:
            out[gid] = PackageGroup.from_table(table)
        except ValueError as e:
            raise ValueError(f"group `{gid}`: {e}") from e
    return out

@dataclass
class PackageFile:
    groups: PackageGroupMap = field(default_factory=dict)

@dataclass
class TargetConfig:
    root_groups: Set[GroupId] = field(default_factory=set)

@dataclass
class Config:
    package_dir: str
    targets: Dict[TargetId, TargetConfig] = field(default_factory=dict)

    def to_table(self) -> Dict[str, Any]:
        return {
            "package_dir": self.package_dir,
            "targets": {
                tid: {"root_groups": sorted(self.targets[tid].root_groups)}
                for tid in sorted(self.targets)
            },
        }

    @classmethod
    def from_table(cls, doc: Dict[str, Any]) -> "Config":
        package_dir = doc.get("package_dir")
        if not isinstance(package_dir, str) or not package_dir.strip():
            raise ValueError("`package_dir` must be a non-empty string")
        targets_raw = doc.get("targets", {})
        if not isinstance(targets_raw, dict):
            raise ValueError("`targets` must be a table")
        targets: Dict[TargetId, TargetConfig] = {}
        for tid in sorted(targets_raw):
            t = targets_raw[tid]
            roots = t.get("root_groups", []) if isinstance(t, dict) else None
            if not isinstance(roots, list) or not all(isinstance(g, str) for g in roots):
                raise ValueError(f"target `{tid}`: `root_groups` must be an array of strings")
            targets[tid] = TargetConfig(root_groups=set(roots))
        return cls(package_dir=package_dir, targets=targets)
