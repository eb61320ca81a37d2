"""Reveal a path in the host operating system's file manager."""

from __future__ import annotations

import logging
import subprocess
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def reveal_command(path: Path, platform: str = sys.platform) -> list[str]:
    """Return the command that shows *path* in the platform's file manager.

    Windows and macOS select the item in place; other platforms open the
    containing directory.
    """
    if platform == "win32":
        return ["explorer", f"/select,{path}"]
    if platform == "darwin":
        return ["open", "-R", str(path)]
    folder = path if path.is_dir() else path.parent
    return ["xdg-open", str(folder)]


def reveal_in_file_manager(path: str | Path) -> None:
    """Ask the file manager to show *path*.  Does not wait for it to exit.

    Raises:
        FileNotFoundError: If *path* does not exist.
    """
    target = Path(path)
    if not target.exists():
        raise FileNotFoundError(f"Path not found: {target}")
    cmd = reveal_command(target)
    logger.info("Revealing %s", target)
    subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
