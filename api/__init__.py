"""Launcher for the local HTTP API server.

The server runs as a detached `python -m api.server` process. Its PID is
recorded in a file so a second overlay reuses it and shutdown can signal it.
"""

import os
import signal
import subprocess
import sys
from pathlib import Path
from typing import Optional

from config import API_PORT, API_PID_FILE, DATA_FILE


def running_pid(pid_file: Path = API_PID_FILE) -> Optional[int]:
    """PID of the recorded server if that process still exists.

    A PID file that is unreadable or names a dead process is removed.
    """
    try:
        pid = int(pid_file.read_text().strip())
        os.kill(pid, 0)
    except FileNotFoundError:
        return None
    except (ValueError, OSError):
        pid_file.unlink(missing_ok=True)
        return None
    return pid


def launch(port: int = API_PORT, data_file: Path = DATA_FILE,
           pid_file: Path = API_PID_FILE) -> Optional[int]:
    """Start the API server in the background unless one is already up.

    Returns:
        PID of the serving process, or None if it could not be spawned.
    """
    pid = running_pid(pid_file)
    if pid is not None:
        print(f"API server already running (PID {pid}) on port {port}")
        return pid

    cmd = [sys.executable, "-m", "api.server", "--port", str(port),
           "--data-file", str(data_file), "--pid-file", str(pid_file)]
    try:
        proc = subprocess.Popen(
            cmd,
            cwd=str(Path(__file__).resolve().parent.parent),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        print(f"Error: Failed to launch API server: {e}")
        return None

    # The server rewrites this itself; recording it now lets an early stop() find it
    pid_file.parent.mkdir(parents=True, exist_ok=True)
    pid_file.write_text(str(proc.pid))
    print(f"API server launched (PID {proc.pid}) on http://127.0.0.1:{port}")
    return proc.pid


def stop(pid_file: Path = API_PID_FILE) -> bool:
    """Send SIGTERM to the recorded server. Returns True if one was signalled."""
    pid = running_pid(pid_file)
    if pid is None:
        print("API server not running")
        return False
    pid_file.unlink(missing_ok=True)
    try:
        os.kill(pid, signal.SIGTERM)
    except OSError as e:
        print(f"Failed to stop API server: {e}")
        return False
    print(f"API server stopped (PID {pid})")
    return True
