"""Deployment record model.

Persisted after a **complete** deployment so configs can be re-rendered
later without redeploying::

    {
      "run_id": "YYYYMMDDHHMMSSffffff",
      "network": "localnet",
      "rpc_url": "http://127.0.0.1:8545",
      "dry_run": false,
      "addresses": {"Migrations": "0x...", "Bytes": "0x...", ...},
      "plan_steps": ["provision Migrations()", "provision library Bytes", ...]
    }

A failed run never produces a record.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Dict, List

from pydantic import BaseModel, Field


class DeploymentRecord(BaseModel):
    """Snapshot of one successful deployment."""

    # microsecond resolution keeps same-second runs in separate files
    run_id: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f"),
    )
    network: str = ""
    rpc_url: str = ""
    dry_run: bool = False
    addresses: Dict[str, str] = Field(default_factory=dict)
    plan_steps: List[str] = Field(default_factory=list)

    def to_sorted_json(self, indent: int = 2) -> str:
        """Serialise with sorted keys for deterministic output."""
        return json.dumps(
            self.model_dump(mode="json"),
            indent=indent,
            sort_keys=True,
        )
