"""Safe file operations for kite-ports."""

import contextlib
import json
import tempfile
from pathlib import Path
from typing import Any

import yaml


class FileOperationError(Exception):
    """Raised when file operations fail."""


def safe_read_yaml(path: Path) -> dict[str, Any]:
    """Safely read a YAML mapping.

    Parameters
    ----------
    path : Path
        Path to YAML file

    Returns
    -------
    dict[str, Any]
        Parsed YAML data, or an empty dict for an empty document

    Raises
    ------
    FileOperationError
        If the file is missing, unreadable, or not valid YAML
    """
    try:
        if not path.exists():
            msg = f"YAML file does not exist: {path}"
            raise FileOperationError(msg)

        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}

    except yaml.YAMLError as e:
        msg = f"Invalid YAML in {path}: {e}"
        raise FileOperationError(msg) from e
    except OSError as e:
        msg = f"Cannot read YAML file {path}: {e}"
        raise FileOperationError(msg) from e


def safe_read_json(path: Path) -> dict[str, Any]:
    """Safely read a JSON object.

    Parameters
    ----------
    path : Path
        Path to JSON file

    Returns
    -------
    dict[str, Any]
        Parsed JSON object

    Raises
    ------
    FileOperationError
        If the file is missing, unreadable, not valid JSON, or its top-level
        value is not an object
    """
    try:
        if not path.exists():
            msg = f"JSON file does not exist: {path}"
            raise FileOperationError(msg)

        with path.open(encoding="utf-8") as f:
            data = json.load(f)

    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        msg = f"Invalid JSON in {path}: {e}"
        raise FileOperationError(msg) from e
    except OSError as e:
        msg = f"Cannot read JSON file {path}: {e}"
        raise FileOperationError(msg) from e

    if not isinstance(data, dict):
        msg = f"Expected a JSON object in {path}, got {type(data).__name__}"
        raise FileOperationError(msg)
    return data


def safe_write_json(path: Path, data: dict[str, Any]) -> None:
    """Write JSON by writing a sibling temp file and renaming it into place.

    Readers see either the previous document or the new one, never a partial
    write.

    Parameters
    ----------
    path : Path
        Path to JSON file
    data : dict[str, Any]
        Data to write

    Raises
    ------
    FileOperationError
        If the file cannot be written
    """
    temp_path = None
    try:
        ensure_dir(path.parent)

        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            prefix=f".{path.name}.",
            suffix=".tmp",
            dir=path.parent,
            delete=False,
        ) as temp_file:
            temp_path = Path(temp_file.name)
            json.dump(data, temp_file, indent=2, sort_keys=True)

        temp_path.replace(path)

    except (OSError, TypeError, ValueError) as e:
        if temp_path is not None:
            with contextlib.suppress(OSError):
                temp_path.unlink(missing_ok=True)
        msg = f"Cannot write JSON file {path}: {e}"
        raise FileOperationError(msg) from e


def ensure_dir(path: Path) -> Path:
    """Ensure directory exists, creating it if necessary.

    Parameters
    ----------
    path : Path
        Directory path to ensure

    Returns
    -------
    Path
        The directory path

    Raises
    ------
    FileOperationError
        If directory cannot be created
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        return path
    except OSError as e:
        msg = f"Cannot create directory {path}: {e}"
        raise FileOperationError(msg) from e
