"""Run-state markers written by the project launcher.

A marker is ``<runtime_dir>/<project>/.studio/server.json``. Its existence
means the project's server was started; the reaper only reads existence and
deletes markers whose owner is gone.
"""

from __future__ import annotations

from pathlib import Path

from kiteports.models import now_ms
from kiteports.validation import validate_project_name
from kiteports_common.constants import MARKER_FILENAME, MARKER_SUBDIR
from kiteports_common.io import safe_write_json
from kiteports_logging import get_logger

logger = get_logger(__name__)


class RunStateMarkers:
    """Access to per-project run-state marker files.

    Parameters
    ----------
    runtime_dir : Path
        Directory holding one subdirectory per project
    """

    def __init__(self, runtime_dir: Path) -> None:
        self.runtime_dir = Path(runtime_dir)

    def path_for(self, project_name: str) -> Path:
        name = validate_project_name(project_name)
        return self.runtime_dir / name / MARKER_SUBDIR / MARKER_FILENAME

    def exists(self, project_name: str) -> bool:
        return self.path_for(project_name).exists()

    def write(self, project_name: str, pid: int, port: int) -> Path:
        """Create or replace the marker for a started server.

        Parameters
        ----------
        project_name : str
            Project whose server was started
        pid : int
            Server process id
        port : int
            Port the server listens on

        Returns
        -------
        Path
            The marker path
        """
        path = self.path_for(project_name)
        safe_write_json(path, {"pid": pid, "port": port, "started_at": now_ms()})
        return path

    def remove(self, project_name: str) -> bool:
        """Delete the marker; return whether one was removed."""
        path = self.path_for(project_name)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Could not remove run-state marker %s: %s", path, e)
            return False
        return True
