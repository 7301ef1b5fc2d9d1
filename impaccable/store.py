from __future__ import annotations
import logging
import os
import tomllib
from typing import Any, Dict

import tomli_w

from .errors import DeserializeError, SerializeError, StorageError

logger = logging.getLogger(__name__)

def read_text(path: str) -> str:
    """
    FileNotFoundError is passed through so callers can map it to their own not-found error.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError:
        raise
    except (OSError, UnicodeDecodeError) as e:
        raise StorageError(path, str(e)) from e

def loads_toml(text: str, path: str = "<string>") -> Dict[str, Any]:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise DeserializeError(path, str(e)) from e

def read_toml(path: str) -> Dict[str, Any]:
    return loads_toml(read_text(path), path)

def dump_toml(path: str, data: Dict[str, Any]) -> str:
    try:
        return tomli_w.dumps(data)
    except (TypeError, ValueError) as e:
        raise SerializeError(path, str(e)) from e

def write_text(path: str, text: str) -> None:
    """
    Truncates and rewrites the file, creating parent directories as needed.
    """
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
    except OSError as e:
        raise StorageError(path, str(e)) from e
    logger.debug("wrote %s (%d bytes)", path, len(text))

def write_toml(path: str, data: Dict[str, Any]) -> None:
    write_text(path, dump_toml(path, data))
