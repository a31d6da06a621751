"""Dependency-ordered deployer.

Runs a :class:`~ibc_deploy.deploy.plan.DeploymentPlan` front to back through
a single driver loop.  Each provisioning step records its address in an
:class:`AddressMapping` immediately after it completes so later steps can
resolve :class:`~ibc_deploy.deploy.plan.AddressRef` arguments against it.

Failure model::

    step i fails  ->  no further steps run
                  ->  the partial mapping is dropped (never returned)
                  ->  ProvisioningError(step_index=i) propagates

There is no retry: a half-applied transaction cannot be safely replayed
from here.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set, Union

from ibc_deploy import ui
from ibc_deploy.deploy.plan import (
    AddressRef,
    ComponentStep,
    DeploymentPlan,
    LibraryStep,
    LinkStep,
)
from ibc_deploy.deploy.provisioner import ProvisionRequest, Provisioner
from ibc_deploy.errors import (
    ConfigurationError,
    ProvisioningError,
    UnresolvedReferenceError,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# AddressMapping
# ---------------------------------------------------------------------------


class AddressMapping(Mapping):
    """Insert-only ``name -> address`` table.

    Entries are recorded once and never overwritten.  After :meth:`freeze`
    the mapping rejects all writes; the renderer only ever sees a frozen one.
    """

    def __init__(self, entries: Optional[Dict[str, str]] = None) -> None:
        self._entries: Dict[str, str] = {}
        self._frozen = False
        for name, address in (entries or {}).items():
            self.record(name, address)

    def record(self, name: str, address: str) -> None:
        if self._frozen:
            raise TypeError("AddressMapping is frozen")
        if name in self._entries:
            raise ValueError(
                f"Address for '{name}' already recorded: {self._entries[name]}"
            )
        if not address:
            raise ValueError(f"Empty address for '{name}'")
        self._entries[name] = address

    def resolve(self, name: str, *, step_name: str = "") -> str:
        """Return the address for *name* or raise :class:`UnresolvedReferenceError`."""
        try:
            return self._entries[name]
        except KeyError:
            raise UnresolvedReferenceError(name, step_name=step_name) from None

    def freeze(self) -> "AddressMapping":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def as_dict(self) -> Dict[str, str]:
        """Plain copy in insertion (plan) order."""
        return dict(self._entries)

    def __getitem__(self, name: str) -> str:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"AddressMapping({self._entries!r}, {state})"


# ---------------------------------------------------------------------------
# Deployer
# ---------------------------------------------------------------------------


def _check_unique_names(steps: Sequence[Any]) -> None:
    """Reject a plan that would provision the same name twice."""
    seen: Set[str] = set()
    for idx, step in enumerate(steps, start=1):
        if isinstance(step, LinkStep):
            continue
        if step.name in seen:
            raise ConfigurationError(
                f"step {idx}: duplicate name '{step.name}' in plan"
            )
        seen.add(step.name)


class Deployer:
    """Drive a provisioner through a fixed plan.

    Args:
        provisioner: Anything implementing the
            :class:`~ibc_deploy.deploy.provisioner.Provisioner` protocol.
    """

    def __init__(self, provisioner: Provisioner) -> None:
        self.provisioner = provisioner

    def provision_all(
        self, plan: Union[DeploymentPlan, Sequence[Any]],
    ) -> AddressMapping:
        """Execute every step in order and return the frozen mapping.

        Raises:
            ProvisioningError: The provisioner failed a step.
            UnresolvedReferenceError: A step referenced a name with no
                recorded address (a plan-ordering bug).
            ConfigurationError: The plan declares a name twice; raised
                before any provisioning call.
        """
        steps = plan.steps if isinstance(plan, DeploymentPlan) else list(plan)
        _check_unique_names(steps)
        mapping = AddressMapping()
        # consumer name -> library names linked into it so far
        linked: Dict[str, Set[str]] = {}
        total = len(steps)

        for idx, step in enumerate(steps, start=1):
            logger.info("[%d/%d] %s", idx, total, step.describe())
            ui.step(f"[{idx}/{total}] {step.describe()}")
            try:
                self._run_step(step, mapping, linked)
            except ProvisioningError as exc:
                exc.step_index = idx
                exc.step_name = exc.step_name or step.name
                logger.error(
                    "Step %d/%d (%s) failed: %s — aborting, %d recorded "
                    "address(es) discarded.",
                    idx, total, step.name, exc, len(mapping),
                )
                ui.fail(f"{step.name}: {exc}")
                raise
            except UnresolvedReferenceError:
                logger.error(
                    "Step %d/%d (%s) has an unresolved reference — "
                    "plan is misordered.",
                    idx, total, step.name,
                )
                raise

        logger.info("Deployment complete — %d address(es) recorded.", len(mapping))
        return mapping.freeze()

    # -- step handlers ------------------------------------------------------

    def _run_step(
        self,
        step: Any,
        mapping: AddressMapping,
        linked: Dict[str, Set[str]],
    ) -> None:
        if isinstance(step, LibraryStep):
            address = self.provisioner.provision(
                ProvisionRequest(name=step.name, artifact=step.artifact),
            )
            self._record(mapping, step.name, address)
        elif isinstance(step, LinkStep):
            address = mapping.resolve(step.library, step_name=step.name)
            self.provisioner.link(step.library, address, list(step.consumers))
            for consumer in step.consumers:
                linked.setdefault(consumer, set()).add(step.library)
            logger.debug("Linked %s@%s into %s", step.library, address, step.consumers)
        elif isinstance(step, ComponentStep):
            for lib in step.libraries:
                if lib not in linked.get(step.name, set()):
                    raise UnresolvedReferenceError(lib, step_name=step.name)
            args = self._resolve_args(step, mapping)
            address = self.provisioner.provision(
                ProvisionRequest(
                    name=step.name,
                    artifact=step.artifact,
                    constructor_args=tuple(args),
                ),
            )
            self._record(mapping, step.name, address)
        else:
            raise TypeError(f"Unknown plan step: {step!r}")

    @staticmethod
    def _resolve_args(step: ComponentStep, mapping: AddressMapping) -> List[Any]:
        return [
            mapping.resolve(a.ref, step_name=step.name)
            if isinstance(a, AddressRef)
            else a
            for a in step.args
        ]

    @staticmethod
    def _record(mapping: AddressMapping, name: str, address: str) -> None:
        if not address:
            raise ProvisioningError(
                f"Provisioner returned no address for '{name}'", step_name=name,
            )
        mapping.record(name, address)
        logger.info("%s deployed at %s", name, address)
        ui.ok(f"{name} -> {address}")


def provision_all(
    provisioner: Provisioner, plan: Union[DeploymentPlan, Sequence[Any]],
) -> AddressMapping:
    """Functional shorthand for ``Deployer(provisioner).provision_all(plan)``."""
    return Deployer(provisioner).provision_all(plan)
