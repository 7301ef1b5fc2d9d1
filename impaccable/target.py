from __future__ import annotations
import logging

from .errors import ActiveTargetFileNotFound, DeserializeError
from .models import TargetId
from .store import loads_toml, read_text, write_toml

logger = logging.getLogger(__name__)

class ActiveTarget:
    """
    The currently selected target, persisted in its own small file so switching
    targets never rewrites the main config. Does not check that the target exists.
    """

    def __init__(self, path: str, target: TargetId):
        self.path = path
        self._target = target

    @staticmethod
    def parse(text: str, path: str = "<string>") -> TargetId:
        target = loads_toml(text, path).get("target")
        if not isinstance(target, str) or not target:
            raise DeserializeError(path, "`target` must be a non-empty string")
        return target

    @classmethod
    def load(cls, path: str) -> "ActiveTarget":
        try:
            text = read_text(path)
        except FileNotFoundError as e:
            raise ActiveTargetFileNotFound(path) from e
        return cls(path, cls.parse(text, path))

    @classmethod
    def create(cls, path: str, target: TargetId) -> "ActiveTarget":
        active = cls(path, target)
        active.write()
        return active

    def get(self) -> TargetId:
        return self._target

    def set(self, target: TargetId) -> None:
        self._target = target
        self.write()
        logger.info("active target set to %s", target)

    def write(self) -> None:
        write_toml(self.path, {"target": self._target})
