"""Dependency-ordered contract deployment."""

from ibc_deploy.deploy.forge import PRIVATE_KEY_ENV, ForgeProvisioner, ForgeResult
from ibc_deploy.deploy.orchestrator import AddressMapping, Deployer, provision_all
from ibc_deploy.deploy.plan import (
    AddressRef,
    ComponentStep,
    DeploymentPlan,
    LibraryStep,
    LinkStep,
    component,
    ibc_core_plan,
    library,
    link,
    load_plan,
    ref,
    validate_plan,
)
from ibc_deploy.deploy.provisioner import (
    DryRunProvisioner,
    ProvisionRequest,
    Provisioner,
    dry_run_address,
)

__all__ = [
    "AddressMapping",
    "AddressRef",
    "ComponentStep",
    "Deployer",
    "DeploymentPlan",
    "DryRunProvisioner",
    "ForgeProvisioner",
    "ForgeResult",
    "LibraryStep",
    "LinkStep",
    "PRIVATE_KEY_ENV",
    "ProvisionRequest",
    "Provisioner",
    "component",
    "dry_run_address",
    "ibc_core_plan",
    "library",
    "link",
    "load_plan",
    "provision_all",
    "ref",
    "validate_plan",
]
