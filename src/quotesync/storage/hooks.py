"""Shell hook execution after a sync pass completes."""

from __future__ import annotations

import json
import logging
import os
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

HOOK_TIMEOUT_SECONDS = 10


def execute_sync_hooks(config: dict, data_dir: Path, result: dict) -> None:
    """Fire configured hooks for one sync result.

    Hooks are fire-and-forget: failures are logged but never raise or fail
    the sync pass.  Each hook receives the result as JSON on stdin.

    Execution order when several are configured:
    1. ``hooks.post_sync`` (every pass)
    2. ``hooks.on.<status>`` (``ok``, ``failed`` or ``busy``)
    3. ``hooks.on.conflicts`` (only when the pass recorded conflicts)
    """
    hooks = config.get("hooks")
    if not hooks:
        return

    env = _build_env(data_dir, result)
    stdin_data = json.dumps(result, sort_keys=True, separators=(",", ":"))

    post_sync_cmd = hooks.get("post_sync")
    if post_sync_cmd:
        _run_hook(post_sync_cmd, env, stdin_data)

    on_hooks = hooks.get("on") or {}
    status_cmd = on_hooks.get(result["status"])
    if status_cmd:
        _run_hook(status_cmd, env, stdin_data)

    conflicts = (result.get("outcome") or {}).get("conflicts") or []
    conflicts_cmd = on_hooks.get("conflicts")
    if conflicts and conflicts_cmd:
        _run_hook(conflicts_cmd, env, stdin_data)


def _build_env(data_dir: Path, result: dict) -> dict[str, str]:
    """Build the environment dict for hook subprocesses."""
    outcome = result.get("outcome") or {}
    env = os.environ.copy()
    env["QUOTESYNC_ROOT"] = str(data_dir.parent)
    env["QUOTESYNC_SYNC_STATUS"] = result["status"]
    env["QUOTESYNC_SYNC_TRIGGER"] = result.get("trigger", "")
    env["QUOTESYNC_ADDED"] = str(outcome.get("added", 0))
    env["QUOTESYNC_UPDATED"] = str(outcome.get("updated", 0))
    env["QUOTESYNC_CONFLICTS"] = str(len(outcome.get("conflicts") or []))
    return env


def _run_hook(cmd: str, env: dict[str, str], stdin_data: str) -> None:
    """Execute a single hook command. Never raises."""
    try:
        subprocess.run(
            cmd,
            shell=True,
            input=stdin_data,
            env=env,
            timeout=HOOK_TIMEOUT_SECONDS,
            capture_output=True,
            text=True,
        )
    except subprocess.TimeoutExpired:
        logger.warning("Hook timed out after %ss: %s", HOOK_TIMEOUT_SECONDS, cmd)
    except Exception as exc:
        logger.warning("Hook error: %s", exc)
