"""Provisioning collaborators.

The deployer treats the ledger as a black box behind two calls::

    provision(request)                      -> address   (or ProvisioningError)
    link(library, address, consumers)       -> None      (or ProvisioningError)

:class:`DryRunProvisioner` implements the protocol offline with deterministic
addresses.  :class:`~ibc_deploy.deploy.forge.ForgeProvisioner` talks to a
real chain through Foundry.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Sequence, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvisionRequest:
    """Everything a provisioner needs to create one component or library."""

    name: str
    artifact: str
    constructor_args: Tuple[Any, ...] = ()


class Provisioner(Protocol):
    """Structural type for provisioning backends."""

    def provision(self, request: ProvisionRequest) -> str:
        ...

    def link(self, library: str, address: str, consumers: Sequence[str]) -> None:
        ...


def dry_run_address(network: str, name: str) -> str:
    """Deterministic 20-byte hex address for *name* on *network*."""
    digest = hashlib.sha256(f"{network}:{name}".encode("utf-8")).hexdigest()
    return "0x" + digest[:40]


@dataclass
class DryRunProvisioner:
    """Offline provisioner: records every call and fabricates addresses.

    Addresses are stable for a given ``(network, name)`` so repeated dry runs
    render byte-identical configs.
    """

    network: str = "dry-run"
    calls: List[Tuple[str, str]] = field(default_factory=list)
    links: Dict[str, Dict[str, str]] = field(default_factory=dict)

    def provision(self, request: ProvisionRequest) -> str:
        self.calls.append(("provision", request.name))
        address = dry_run_address(self.network, request.name)
        logger.debug(
            "dry-run provision %s args=%s libraries=%s -> %s",
            request.name,
            list(request.constructor_args),
            self.links.get(request.name, {}),
            address,
        )
        return address

    def link(self, library: str, address: str, consumers: Sequence[str]) -> None:
        self.calls.append(("link", library))
        for consumer in consumers:
            self.links.setdefault(consumer, {})[library] = address
