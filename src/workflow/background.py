"""Detached background jobs with a pid file per job name.

A job is started only when no live process is recorded for its name, so
repeated triggers while a batch is still running are dropped.
"""

from __future__ import annotations

import os
import subprocess
import sys
import time
from pathlib import Path
from typing import List, Optional, Sequence

from iconcache.logging import get_logger

LOGGER = get_logger("workflow.background")

CACHE_JOB_NAME = "CACHE_IMAGES"
JOBS_DIRNAME = "jobs"
CLAIM_GRACE_S = 10.0


def pid_path_for(job_name: str, jobs_dir: Path) -> Path:
    return Path(jobs_dir) / f"{job_name}.pid"


def _process_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but owned by someone else
        return True
    except OSError:
        return False
    return True


def is_running(job_name: str, jobs_dir: Path) -> bool:
    """Return True if the pid recorded for ``job_name`` belongs to a live process.

    An empty pid file younger than CLAIM_GRACE_S is a claim still being
    written and counts as running. Stale or unreadable pid files are removed.
    """
    pid_path = pid_path_for(job_name, jobs_dir)
    if not pid_path.exists():
        return False
    try:
        text = pid_path.read_text(encoding="utf-8").strip()
        if not text and time.time() - pid_path.stat().st_mtime < CLAIM_GRACE_S:
            return True
        pid = int(text)
    except FileNotFoundError:
        return False
    except (OSError, ValueError):
        LOGGER.warning("Removing unreadable pid file %s", pid_path)
        pid_path.unlink(missing_ok=True)
        return False

    if pid > 0 and _process_alive(pid):
        return True

    LOGGER.debug("Removing stale pid file %s (pid %d)", pid_path, pid)
    pid_path.unlink(missing_ok=True)
    return False


def _claim(job_name: str, jobs_dir: Path) -> bool:
    """Create the pid file exclusively, recording this process as the claimant."""
    pid_path = pid_path_for(job_name, jobs_dir)
    for _ in range(2):
        try:
            fd = os.open(pid_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            if is_running(job_name, jobs_dir):
                return False
            # stale file was removed, try once more
            continue
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(str(os.getpid()))
        return True
    return False


def run_in_background(job_name: str, cmd: Sequence[str], jobs_dir: Path) -> bool:
    """Start ``cmd`` detached unless ``job_name`` is already running.

    The pid file is claimed before spawning, so a trigger arriving while
    another one is mid-spawn finds it taken. Returns True if a new process
    was started.
    """
    jobs_dir = Path(jobs_dir)
    pid_path = pid_path_for(job_name, jobs_dir)
    try:
        jobs_dir.mkdir(parents=True, exist_ok=True)
        claimed = _claim(job_name, jobs_dir)
    except OSError as exc:
        LOGGER.error("Could not claim background job %s: %s", job_name, exc)
        return False
    if not claimed:
        LOGGER.info("Background job %s already running", job_name)
        return False

    try:
        proc = subprocess.Popen(
            list(cmd),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as exc:
        LOGGER.error("Could not start background job %s: %s", job_name, exc)
        pid_path.unlink(missing_ok=True)
        return False

    try:
        pid_path.write_text(str(proc.pid), encoding="utf-8")
    except OSError as exc:
        LOGGER.warning("Started %s (pid %d) but could not record pid: %s", job_name, proc.pid, exc)

    LOGGER.info("Background job %s started (pid %d)", job_name, proc.pid)
    return True


def update_cache_command(cache_dir: Optional[Path] = None, base_dir: Optional[Path] = None) -> List[str]:
    """Command line that runs the batch in a fresh interpreter."""
    cmd = [sys.executable, "-m", "workflow"]
    if base_dir is not None:
        cmd += ["--base-dir", str(base_dir)]
    if cache_dir is not None:
        cmd += ["--cache-dir", str(cache_dir)]
    cmd.append("update-cache")
    return cmd


def release(job_name: str, jobs_dir: Path, pid: Optional[int] = None) -> None:
    """Remove the pid file of ``job_name`` if it records ``pid`` (default: this process)."""
    pid = os.getpid() if pid is None else pid
    pid_path = pid_path_for(job_name, jobs_dir)
    try:
        recorded = int(pid_path.read_text(encoding="utf-8").strip())
    except (OSError, ValueError):
        return
    if recorded == pid:
        pid_path.unlink(missing_ok=True)
