"""Project name validation.

Project names become directory names under the runtime dir, so anything that
could escape it is rejected.
"""

import re

from kiteports.errors import InvalidProjectNameError

MAX_PROJECT_NAME_LENGTH = 50
_VALID_NAME = re.compile(r"^[A-Za-z0-9_-]+$")


def validate_project_name(name: object) -> str:
    """Validate and normalize a project name.

    Parameters
    ----------
    name : object
        Candidate name

    Returns
    -------
    str
        The trimmed name

    Raises
    ------
    InvalidProjectNameError
        If the name is missing, too long, path-like, or has characters other
        than letters, digits, hyphens and underscores
    """
    if not isinstance(name, str) or not name:
        msg = "Project name is required"
        raise InvalidProjectNameError(msg)

    trimmed = name.strip()
    if not trimmed:
        msg = "Project name cannot be empty"
        raise InvalidProjectNameError(msg)

    if len(trimmed) > MAX_PROJECT_NAME_LENGTH:
        msg = f"Project name too long (max {MAX_PROJECT_NAME_LENGTH} characters)"
        raise InvalidProjectNameError(msg, details={"name": trimmed})

    if ".." in trimmed or "/" in trimmed or "\\" in trimmed:
        msg = "Project name contains invalid characters (no paths allowed)"
        raise InvalidProjectNameError(msg, details={"name": trimmed})

    if not _VALID_NAME.match(trimmed):
        msg = (
            "Project name can only contain letters, numbers, hyphens, "
            "and underscores"
        )
        raise InvalidProjectNameError(msg, details={"name": trimmed})

    return trimmed
