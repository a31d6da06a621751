"""Persistent storage for deployment records.

Writes JSON to ``~/.config/ibc-deploy/`` (XDG_CONFIG_HOME / ibc-deploy).

File naming::

    deployment_<network>_<run_id>.json

All JSON is serialised with **sorted keys** for deterministic, diff-friendly output.
Note that sorting applies to the record's top-level keys and to
``addresses``; plan order is kept in ``plan_steps``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Tuple, Union

from pydantic import ValidationError

from ibc_deploy.errors import ConfigurationError
from ibc_deploy.state.models import DeploymentRecord

logger = logging.getLogger(__name__)

_APP_DIR = "ibc-deploy"
_RECORD_PREFIX = "deployment_"


# ---------------------------------------------------------------------------
# Directory resolution
# ---------------------------------------------------------------------------


def config_dir() -> Path:
    """Return the XDG config directory for ibc-deploy.

    Uses ``XDG_CONFIG_HOME`` if set, otherwise ``~/.config``.
    Creates the directory if it does not exist.
    """
    base = os.environ.get("XDG_CONFIG_HOME", "")
    if not base:
        base = str(Path.home() / ".config")
    path = Path(base) / _APP_DIR
    path.mkdir(parents=True, exist_ok=True)
    return path


def _safe_name(name: Optional[str]) -> str:
    """Sanitise a network name for use in a filename."""
    if not name:
        return "unknown"
    return "".join(c if (c.isalnum() or c in "-_") else "_" for c in name)


# ---------------------------------------------------------------------------
# Write / load
# ---------------------------------------------------------------------------


def write_deployment_record(record: DeploymentRecord) -> Path:
    """Persist *record* and return the written path.

    Path pattern: ``<config_dir>/deployment_<network>_<run_id>.json``
    """
    filename = f"{_RECORD_PREFIX}{_safe_name(record.network)}_{record.run_id}.json"
    dest = config_dir() / filename
    dest.write_text(record.to_sorted_json() + "\n", encoding="utf-8")
    logger.info("Deployment record written to %s", dest)
    return dest


def load_deployment_record(path: Union[str, Path]) -> DeploymentRecord:
    """Load a record written by :func:`write_deployment_record`.

    Raises:
        ConfigurationError: The file is missing or not a valid record.
    """
    p = Path(path)
    if not p.is_file():
        raise ConfigurationError(f"Deployment record not found: {p}")
    try:
        return DeploymentRecord.model_validate_json(p.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid deployment record {p}: {exc}") from exc


def _split_record_stem(path: Path) -> Tuple[str, str]:
    """``deployment_<network>_<run_id>`` -> ``(network, run_id)``."""
    network, _, run_id = path.stem[len(_RECORD_PREFIX):].rpartition("_")
    return network, run_id


def latest_deployment_record(network: Optional[str] = None) -> Optional[Path]:
    """Return the newest record path (optionally for *network*), or ``None``.

    ``run_id`` is a UTC timestamp, so lexical order of run ids is
    chronological.  The network part of the file name must match exactly;
    ``local`` never picks up a ``local_fork`` record.
    """
    candidates = [
        p for p in config_dir().glob(f"{_RECORD_PREFIX}*.json")
        if network is None or _split_record_stem(p)[0] == _safe_name(network)
    ]
    candidates.sort(key=lambda p: _split_record_stem(p)[1])
    return candidates[-1] if candidates else None
