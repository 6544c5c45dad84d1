"""File storage layer for Visor."""

import hashlib
import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional

from config import DATA_FILE


def ensure_data_dir(path: Path = DATA_FILE) -> None:
    """Create the data directory if it doesn't exist."""
    path.parent.mkdir(parents=True, exist_ok=True)


def _quarantine(path: Path) -> Optional[Path]:
    """Move an unreadable data file aside so a later save can't clobber it."""
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    target = path.with_name(f"{path.name}.corrupt-{stamp}")
    try:
        os.replace(path, target)
    except OSError as e:
        print(f"Error: Failed to move corrupt {path} aside: {e}")
        return None
    print(f"Warning: {path} is corrupt, moved to {target}")
    return target


def load_data(path: Path = DATA_FILE) -> Optional[dict]:
    """
    Load the persisted snapshot from the data file.

    Args:
        path: Data file location.

    Returns:
        The decoded object, or None if the file is missing, unreadable or corrupt.
        A corrupt file is renamed to `<name>.corrupt-<timestamp>`.
    """
    path = Path(path)
    if not path.exists():
        return None

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError):
        _quarantine(path)
        return None
    except OSError as e:
        print(f"Warning: Failed to load {path}: {e}")
        return None

    if not isinstance(data, dict):
        _quarantine(path)
        return None
    return data


def save_data(data: dict, path: Path = DATA_FILE) -> bool:
    """
    Save the snapshot using atomic write.

    Args:
        data: JSON-serializable snapshot.
        path: Data file location.

    Returns:
        True on success, False if the write failed.
    """
    path = Path(path)
    temp_path = None
    try:
        ensure_data_dir(path)

        # Atomic write: write to temp file, then rename
        fd, temp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix='.data_',
            suffix='.json.tmp'
        )
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        os.replace(temp_path, path)
        return True

    except (OSError, TypeError, ValueError) as e:
        print(f"Error: Failed to save {path}: {e}")
        # Clean up temp file if it exists
        if temp_path is not None and os.path.exists(temp_path):
            try:
                os.unlink(temp_path)
            except OSError as cleanup_error:
                print(f"Warning: Failed to remove {temp_path}: {cleanup_error}")
        return False


def file_digest(path: Path = DATA_FILE) -> Optional[str]:
    """SHA-256 of the file's bytes, or None if it can't be read."""
    try:
        return hashlib.sha256(Path(path).read_bytes()).hexdigest()
    except OSError:
        return None
