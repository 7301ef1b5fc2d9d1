from __future__ import annotations

from typing import Optional


class ImpaccableError(Exception):
    """Base class for every error the package configuration and sync logic raise."""


# ---------- not found ----------

class TargetNotFound(ImpaccableError):
    def __init__(self, target: str):
        super().__init__(f"Target `{target}` not found")
        self.target = target


class GroupNotFound(ImpaccableError):
    def __init__(self, group: str, target: Optional[str] = None):
        msg = f"Group `{group}` not found"
        if target is not None:
            msg += f" (root group of target `{target}`)"
        super().__init__(msg)
        self.group = group
        self.target = target


class PackageNotFound(ImpaccableError):
    def __init__(self, package: str, group: str):
        super().__init__(f"Package `{package}` not found in group `{group}`")
        self.package = package
        self.group = group


class PackageFileNotFound(ImpaccableError):
    def __init__(self, package_file: str):
        super().__init__(f"Package file `{package_file}` not found")
        self.package_file = package_file


class PackageDirNotFound(ImpaccableError):
    def __init__(self, package_dir: str):
        super().__init__(f"Package directory `{package_dir}` not found")
        self.package_dir = package_dir


class ConfigFileNotFound(ImpaccableError):
    def __init__(self, path: str):
        super().__init__(f"Failed to open config file at `{path}`")
        self.path = path


class ActiveTargetFileNotFound(ImpaccableError):
    def __init__(self, path: str):
        super().__init__(f"Failed to open active target file at `{path}`")
        self.path = path


# ---------- already exists ----------

class PackageFileAlreadyExists(ImpaccableError):
    def __init__(self, package_file: str):
        super().__init__(f"Package file `{package_file}` already exists")
        self.package_file = package_file


class GroupAlreadyExists(ImpaccableError):
    def __init__(self, group: str, package_file: str):
        super().__init__(f"Group `{group}` already exists in `{package_file}`")
        self.group = group
        self.package_file = package_file


class PackageFileOutsidePackageDir(ImpaccableError):
    def __init__(self, package_file: str, package_dir: str):
        super().__init__(f"Package file `{package_file}` is not inside `{package_dir}`")
        self.package_file = package_file
        self.package_dir = package_dir


# ---------- storage ----------

class StorageError(ImpaccableError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"I/O failure on `{path}`: {reason}")
        self.path = path


class SerializeError(ImpaccableError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to serialize `{path}` to toml: {reason}")
        self.path = path


class DeserializeError(ImpaccableError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to deserialize `{path}` from toml: {reason}")
        self.path = path


class DuplicateGroupError(DeserializeError):
    def __init__(self, group: str, path: str, first_path: str):
        super().__init__(path, f"group `{group}` is already defined in `{first_path}`")
        self.group = group
        self.first_path = first_path


# ---------- package manager ----------

class PacmanError(ImpaccableError):
    def __init__(self, message: str, returncode: Optional[int] = None, output: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class UnexpectedOutputError(PacmanError):
    pass


# ---------- templating ----------

class DistroNotSupported(ImpaccableError):
    def __init__(self, distro: str, reason: str = ""):
        msg = f"Distro not supported for package templating: {distro}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)
        self.distro = distro


class TemplateFetchError(ImpaccableError):
    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch package list {url}: {reason}")
        self.url = url


class Aborted(ImpaccableError):
    """An interactive prompt was declined or cancelled."""
