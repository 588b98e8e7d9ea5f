# photoflow/imaging/files.py
from pathlib import Path
from typing import Optional, Union

DEFAULT_EXTENSION = ".jpg"


def get_extension(filename: Optional[str]) -> str:
    """Returns the extension including the dot, or ``.jpg`` when there is none."""
    if not filename:
        return DEFAULT_EXTENSION
    name = Path(filename).name
    last_dot = name.rfind(".")
    if last_dot > 0:
        return name[last_dot:]
    return DEFAULT_EXTENSION


def ensure_directory_exists(directory: Union[str, Path]) -> Path:
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    return path
