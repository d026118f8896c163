"""Shell hooks for checklist events.

Hooks run shell commands when the store fires an event.
Configured via hooks.yaml in the workspace root, for example::

    item_added:
      - "notify-send 'New item'"
    checklist_removed:
      - command: ./archive.sh
        timeout: 10

The event payload is passed as JSON via stdin.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Callable

from checklists.events import ALL_EVENTS, EventBus
from checklists.fileio import read_yaml
from checklists.workspace import hooks_config_path, workspace_root

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
OUTPUT_CAP = 4096


def load_hooks_config(root: Path | None = None) -> dict[str, Any]:
    """Load hooks configuration from hooks.yaml."""
    if root is None:
        root = workspace_root()
    path = hooks_config_path(root)
    if not path.exists():
        return {}
    return read_yaml(path)


def payload_to_context(event: str, payload: dict[str, Any]) -> dict[str, Any]:
    """Turn an event payload into JSON-ready data."""
    context: dict[str, Any] = {"event": event}
    for key, value in payload.items():
        to_dict = getattr(value, "to_dict", None)
        context[key] = to_dict() if callable(to_dict) else value
    return context


def run_hooks(
    hook_point: str,
    context: dict[str, Any],
    root: Path | None = None,
) -> list[dict[str, Any]]:
    """Run all hooks registered for a given event.

    Returns list of results with stdout/stderr and exit codes.
    """
    if hook_point not in ALL_EVENTS:
        return []

    if root is None:
        root = workspace_root()

    config = load_hooks_config(root)
    hooks = config.get(hook_point, [])

    if not hooks or not isinstance(hooks, list):
        return []

    results = []
    context_json = json.dumps(context, ensure_ascii=False, default=str)

    for hook in hooks:
        if isinstance(hook, str):
            command = hook
            timeout = DEFAULT_TIMEOUT
        elif isinstance(hook, dict):
            command = hook.get("command", "")
            timeout = hook.get("timeout", DEFAULT_TIMEOUT)
        else:
            continue

        if not command:
            continue

        result: dict[str, Any] = {"command": command, "hook_point": hook_point}
        try:
            proc = subprocess.run(
                command,
                shell=True,
                input=context_json,
                capture_output=True,
                text=True,
                timeout=timeout,
                cwd=str(root),
            )
            result["exit_code"] = proc.returncode
            result["stdout"] = proc.stdout[:OUTPUT_CAP]
            result["stderr"] = proc.stderr[:OUTPUT_CAP]
            if proc.returncode != 0:
                logger.warning("Hook %r for %s exited %d", command, hook_point, proc.returncode)
        except subprocess.TimeoutExpired:
            result["exit_code"] = -1
            result["error"] = f"Hook timed out after {timeout}s"
            logger.warning("Hook %r for %s timed out after %ss", command, hook_point, timeout)
        except OSError as e:
            result["exit_code"] = -1
            result["error"] = str(e)
            logger.warning("Hook %r for %s failed: %s", command, hook_point, e)

        results.append(result)

    return results


def attach_hooks(bus: EventBus, root: Path | None = None) -> list[str]:
    """Subscribe a hook runner for every event configured in hooks.yaml.

    Returns the events that got a subscriber.
    """
    if root is None:
        root = workspace_root()
    config = load_hooks_config(root)
    attached = []
    for event in sorted(config):
        if event not in ALL_EVENTS:
            logger.warning("Ignoring hooks for unknown event %r", event)
            continue
        bus.subscribe(event, _runner(event, root))
        attached.append(event)
    return attached


def _runner(event: str, root: Path) -> Callable[..., list[dict[str, Any]]]:
    def run(**payload: Any) -> list[dict[str, Any]]:
        return run_hooks(event, payload_to_context(event, payload), root)

    return run
