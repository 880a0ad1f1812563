"""
Shell runner — the single place where ``subprocess.run`` is called.

Hook commands, data copies, the privileged unpack helper and
``systemctl`` all go through ``run_command``. Results come back as a
plain dict; callers turn a failed result into the matching engine error.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from typing import Any

logger = logging.getLogger(__name__)

_OUTPUT_TAIL = 2000


def run_command(
    cmd: list[str],
    *,
    timeout: float | None = None,
    env_overrides: dict[str, str] | None = None,
    cwd: str | None = None,
    inherit_stdio: bool = False,
) -> dict[str, Any]:
    """Run a command and report how it went.

    Args:
        cmd: Argument vector.
        timeout: Seconds before the command is abandoned (None = wait).
        env_overrides: Extra environment variables.
        cwd: Working directory.
        inherit_stdio: Let the child write straight to our stdout/stderr
            instead of capturing its output.

    Returns:
        ``{"ok": True, "returncode": 0, "stdout": ..., "elapsed_ms": N}``
        on success; ``{"ok": False, "returncode": N, "error": ...}``
        otherwise. ``returncode`` is -1 when the command never ran.
    """
    env = None
    if env_overrides:
        env = os.environ.copy()
        env.update(env_overrides)

    logger.debug("Running: %s", cmd)
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            capture_output=not inherit_stdio,
            text=True,
            timeout=timeout,
            env=env,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        return {
            "ok": False,
            "returncode": -1,
            "timed_out": True,
            "error": f"Command timed out ({timeout}s)",
        }
    except OSError as e:
        return {"ok": False, "returncode": -1, "error": str(e)}

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = (result.stdout or "")[-_OUTPUT_TAIL:]
    stderr = (result.stderr or "")[-_OUTPUT_TAIL:]

    if result.returncode == 0:
        return {
            "ok": True,
            "returncode": 0,
            "stdout": stdout,
            "elapsed_ms": elapsed_ms,
        }

    logger.debug("Command %s exited %d: %s", cmd, result.returncode, stderr.strip())
    return {
        "ok": False,
        "returncode": result.returncode,
        "error": f"Command failed (exit {result.returncode})",
        "stdout": stdout,
        "stderr": stderr,
        "elapsed_ms": elapsed_ms,
    }


def run_shell(command: str, **kwargs: Any) -> dict[str, Any]:
    """Run ``command`` through ``sh -c``."""
    return run_command(["sh", "-c", command], **kwargs)
