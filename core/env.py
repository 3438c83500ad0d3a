"""Load .env files before configuration is read."""

from pathlib import Path
from typing import Optional, Set, Union

from dotenv import find_dotenv, load_dotenv

_LOADED: Set[str] = set()


def load_env(project_root: Optional[Union[str, Path]] = None) -> Optional[str]:
    """
    Load the nearest .env once (existing variables win).

    Without ``project_root`` the search starts from the current directory;
    with it, ``<project_root>/.env`` is used when present.

    Returns:
        The path of the loaded file, or None if there was none.
    """
    if project_root is not None:
        candidate = Path(project_root) / ".env"
        dotenv_path = str(candidate) if candidate.is_file() else ""
    else:
        dotenv_path = find_dotenv(usecwd=True)

    if not dotenv_path:
        return None
    if dotenv_path not in _LOADED:
        load_dotenv(dotenv_path, override=False)
        _LOADED.add(dotenv_path)
    return dotenv_path
