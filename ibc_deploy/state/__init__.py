"""Persisted deployment state."""

from ibc_deploy.state.models import DeploymentRecord
from ibc_deploy.state.store import (
    config_dir,
    latest_deployment_record,
    load_deployment_record,
    write_deployment_record,
)

__all__ = [
    "DeploymentRecord",
    "config_dir",
    "latest_deployment_record",
    "load_deployment_record",
    "write_deployment_record",
]
