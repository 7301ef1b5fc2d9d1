from __future__ import annotations
import logging
import os
import socket
from typing import Dict, Optional

from .errors import ConfigFileNotFound, DeserializeError, GroupNotFound, TargetNotFound
from .models import Config, GroupId, TargetConfig, TargetId
from .packages import PackageConfiguration
from .store import dump_toml, read_toml, write_toml

logger = logging.getLogger(__name__)

APP_NAME = "impaccable"
CONFIG_ENV = "IMPACCABLE_CONFIG"
TARGET_ENV = "IMPACCABLE_TARGET"

def config_home() -> str:
    base = os.environ.get("XDG_CONFIG_HOME") or os.path.expanduser("~/.config")
    return os.path.join(base, APP_NAME)

def cache_home() -> str:
    base = os.environ.get("XDG_CACHE_HOME") or os.path.expanduser("~/.cache")
    return os.path.join(base, APP_NAME)

def resolve_config_path(override: Optional[str] = None) -> str:
    """
    command line > environment > default config directory
    """
    if override:
        return os.path.abspath(override)
    if os.environ.get(CONFIG_ENV):
        return os.path.abspath(os.environ[CONFIG_ENV])
    return os.path.join(config_home(), "config.toml")

def resolve_target_path(override: Optional[str] = None) -> str:
    if override:
        return os.path.abspath(override)
    if os.environ.get(TARGET_ENV):
        return os.path.abspath(os.environ[TARGET_ENV])
    return os.path.join(config_home(), "active-target.toml")

def read_hostname(path: str = "/etc/hostname") -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            name = f.read().strip()
    except OSError:
        name = ""
    return name or socket.gethostname()

def template_config() -> Config:
    """
    Placeholder configuration for first-run creation, one target named after this host.
    """
    return Config(
        package_dir="./packages",
        targets={read_hostname(): TargetConfig(root_groups={"awesome_software"})},
    )

def parse_config(path: str) -> Config:
    try:
        doc = read_toml(path)
    except FileNotFoundError as e:
        raise ConfigFileNotFound(path) from e
    try:
        return Config.from_table(doc)
    except ValueError as e:
        raise DeserializeError(path, str(e)) from e

class ConfigManager:
    """
    Owns the parsed config file and the package configuration it points to.
    Config changes are written back to the config file immediately.
    """

    def __init__(self, config_path: str, config: Config, package_config: PackageConfiguration):
        self.config_path = config_path
        self.config = config
        self.package_config = package_config

    @classmethod
    def parse(cls, config_path: str) -> "ConfigManager":
        config_path = os.path.abspath(config_path)
        config = parse_config(config_path)
        package_config = PackageConfiguration.parse(package_dir_of(config_path, config))
        manager = cls(config_path, config, package_config)
        manager.validate()
        return manager

    @property
    def package_dir(self) -> str:
        return self.package_config.package_dir

    @property
    def targets(self) -> Dict[TargetId, TargetConfig]:
        return self.config.targets

    def target(self, target_id: TargetId) -> TargetConfig:
        t = self.config.targets.get(target_id)
        if t is None:
            raise TargetNotFound(target_id)
        return t

    def validate(self) -> None:
        """
        Every root group of every target has to exist in the package configuration.
        """
        known = self.package_config.group_ids()
        for tid, t in self.config.targets.items():
            for gid in sorted(t.root_groups):
                if gid not in known:
                    raise GroupNotFound(gid, target=tid)

    def add_root_group(self, target_id: TargetId, group_id: GroupId) -> bool:
        t = self.target(target_id)
        if group_id in t.root_groups:
            return False
        t.root_groups.add(group_id)
        self.write()
        logger.info("added root group %s to target %s", group_id, target_id)
        return True

    def render(self) -> str:
        return dump_toml(self.config_path, self.config.to_table())

    def write(self) -> None:
        write_toml(self.config_path, self.config.to_table())

def package_dir_of(config_path: str, config: Config) -> str:
    base = os.path.dirname(os.path.abspath(config_path))
    return os.path.normpath(os.path.join(base, os.path.expanduser(config.package_dir)))
