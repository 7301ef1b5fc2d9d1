from __future__ import annotations
import logging
import os
import re
import shlex
import shutil
import subprocess
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Set, Tuple

from .errors import PacmanError, UnexpectedOutputError
from .models import PackageId

logger = logging.getLogger(__name__)

# pacman's field labels are translated, force the untranslated report
PACMAN_ENV = {"LC_ALL": "C"}

RE_FIELD = re.compile(r"^(?P<key>[^\s:][^:]*?)\s*:\s?(?P<value>.*)$")
RE_CONTINUATION = re.compile(r"^\s+\S")

class PackageManagerClient(Protocol):
    def query_installed(self, explicit: bool) -> Set[PackageId]: ...
    def install(self, packages: Sequence[PackageId]) -> None: ...
    def uninstall(self, packages: Sequence[PackageId]) -> int: ...
    def required_by(self, packages: Sequence[PackageId]) -> List[Tuple[PackageId, List[PackageId]]]: ...

def which(cmd: str) -> bool:
    return shutil.which(cmd) is not None

def _fmt(cmd: Sequence[str]) -> str:
    return " ".join(shlex.quote(c) for c in cmd)

def run_capture(cmd: List[str], env: Optional[Dict[str, str]] = None) -> Tuple[int, str]:
    logger.info("CMD %s", _fmt(cmd))
    try:
        p = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=dict(os.environ, **(env or {})),
        )
    except FileNotFoundError:
        return 127, f"Command not found: {cmd[0]}"
    if p.stderr:
        logger.debug("STDERR %s", p.stderr.strip())
    if p.returncode != 0:
        return p.returncode, p.stderr or p.stdout
    return p.returncode, p.stdout

def run_attached(cmd: List[str]) -> int:
    """
    Runs with the terminal attached so pacman can ask for confirmation.
    """
    logger.info("CMD %s", _fmt(cmd))
    try:
        return subprocess.call(cmd)
    except FileNotFoundError:
        logger.error("Command not found: %s", cmd[0])
        return 127

def parse_info_blocks(output: str) -> List[Dict[str, str]]:
    """
    Splits `pacman -Qi` output into one field dict per package.
    Wrapped values (indented continuation lines) are joined with a space.
    """
    blocks: List[Dict[str, str]] = []
    cur: Dict[str, str] = {}
    last_key = ""
    for ln in output.splitlines():
        if not ln.strip():
            if cur:
                blocks.append(cur)
            cur, last_key = {}, ""
            continue
        if last_key and RE_CONTINUATION.match(ln):
            cur[last_key] = (cur[last_key] + " " + ln.strip()).strip()
            continue
        m = RE_FIELD.match(ln)
        if not m:
            continue
        last_key = " ".join(m.group("key").split())
        cur[last_key] = m.group("value").strip()
    if cur:
        blocks.append(cur)
    return blocks

def parse_required_by(value: str) -> List[PackageId]:
    deps = value.split()
    if deps == ["None"]:
        return []
    return deps

def parse_required_by_many(output: str, packages: Sequence[PackageId]) -> List[Tuple[PackageId, List[PackageId]]]:
    by_name: Dict[str, List[PackageId]] = {}
    for block in parse_info_blocks(output):
        name = block.get("Name")
        if not name:
            continue
        if "Required By" not in block:
            raise UnexpectedOutputError(f"No 'Required By' field for package {name}", output=output)
        by_name[name] = parse_required_by(block["Required By"])
    out: List[Tuple[PackageId, List[PackageId]]] = []
    for p in packages:
        if p not in by_name:
            raise UnexpectedOutputError(f"No 'Required By' information found for package {p}", output=output)
        out.append((p, by_name[p]))
    return out

class PacmanClient:
    def __init__(self, binary: str = "pacman"):
        self.binary = binary

    def query_installed(self, explicit: bool) -> Set[PackageId]:
        args = "-Qqe" if explicit else "-Qq"
        rc, out = run_capture([self.binary, args], env=PACMAN_ENV)
        if rc != 0:
            raise PacmanError(f"Failed to run {self.binary} {args} (rc={rc}): {out.strip()}", rc, out)
        return {ln.strip() for ln in out.splitlines() if ln.strip()}

    def install(self, packages: Iterable[PackageId]) -> None:
        pkgs = list(packages)
        if not pkgs:
            return
        rc = run_attached([self.binary, "-S", *pkgs])
        if rc != 0:
            raise PacmanError(f"{self.binary} -S failed (rc={rc})", rc)

    def uninstall(self, packages: Iterable[PackageId]) -> int:
        pkgs = list(packages)
        if not pkgs:
            return 0
        return run_attached([self.binary, "-Rs", *pkgs])

    def required_by(self, packages: Sequence[PackageId]) -> List[Tuple[PackageId, List[PackageId]]]:
        pkgs = list(packages)
        if not pkgs:
            return []
        rc, out = run_capture([self.binary, "-Qi", *pkgs], env=PACMAN_ENV)
        if rc != 0:
            raise PacmanError(f"Failed to run {self.binary} -Qi (rc={rc}): {out.strip()}", rc, out)
        return parse_required_by_many(out, pkgs)
