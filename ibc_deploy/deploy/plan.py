"""Deployment plan model — the fixed, linear list of provisioning steps.

A plan is an explicit ordering computed ahead of time rather than a graph
that gets sorted at runtime.  Three step kinds exist:

* ``library``   — provision a shared library and record its address
* ``link``      — bind a provisioned library into its consumer components
* ``component`` — provision a contract, passing literal or
  :class:`AddressRef` constructor arguments

Plans can be built in Python (see :func:`ibc_core_plan`) or loaded from
YAML::

    steps:
      - kind: library
        name: Bytes
        artifact: contracts/lib/Bytes.sol:Bytes
      - kind: link
        library: Bytes
        consumers: [IBCClient]
      - kind: component
        name: ProvableStore
      - kind: component
        name: IBCClient
        libraries: [Bytes]
        args:
          - ref: ProvableStore
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Sequence, Set, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    ValidationError,
    model_validator,
)

from ibc_deploy.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Constructor arguments
# ---------------------------------------------------------------------------


class AddressRef(BaseModel):
    """Constructor argument resolved from a previously recorded address."""

    model_config = ConfigDict(frozen=True)

    ref: str


ConstructorArg = Union[AddressRef, StrictBool, StrictInt, str]


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


class LibraryStep(BaseModel):
    """Provision a shared library."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["library"] = "library"
    name: str
    artifact: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_artifact(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("artifact"):
            return {**data, "artifact": data.get("name", "")}
        return data

    @property
    def references(self) -> List[str]:
        return []

    def describe(self) -> str:
        return f"provision library {self.name}"


class LinkStep(BaseModel):
    """Bind a provisioned library into every listed consumer."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["link"] = "link"
    library: str
    consumers: List[str] = Field(min_length=1)

    @property
    def name(self) -> str:
        return f"link:{self.library}"

    @property
    def references(self) -> List[str]:
        return [self.library]

    def describe(self) -> str:
        return f"link {self.library} -> {', '.join(self.consumers)}"


class ComponentStep(BaseModel):
    """Provision a component with ordered constructor arguments."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["component"] = "component"
    name: str
    artifact: str = ""
    args: List[ConstructorArg] = Field(default_factory=list)
    libraries: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _default_artifact(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("artifact"):
            return {**data, "artifact": data.get("name", "")}
        return data

    @property
    def references(self) -> List[str]:
        """Names whose addresses must exist before this step runs."""
        return [a.ref for a in self.args if isinstance(a, AddressRef)]

    def describe(self) -> str:
        rendered = [
            a.ref if isinstance(a, AddressRef) else repr(a) for a in self.args
        ]
        return f"provision {self.name}({', '.join(rendered)})"


PlanStep = Annotated[
    Union[LibraryStep, LinkStep, ComponentStep],
    Field(discriminator="kind"),
]


class DeploymentPlan(BaseModel):
    """Ordered list of steps plus a few lookup helpers."""

    model_config = ConfigDict(frozen=True)

    steps: List[PlanStep] = Field(default_factory=list)

    @property
    def declared_names(self) -> List[str]:
        """Names that will appear in the address mapping, in plan order."""
        return [
            s.name for s in self.steps if not isinstance(s, LinkStep)
        ]

    def __len__(self) -> int:
        return len(self.steps)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def ref(name: str) -> AddressRef:
    """Shorthand for an :class:`AddressRef` constructor argument."""
    return AddressRef(ref=name)


def library(name: str, artifact: str = "") -> LibraryStep:
    return LibraryStep(name=name, artifact=artifact)


def link(library_name: str, *consumers: str) -> LinkStep:
    return LinkStep(library=library_name, consumers=list(consumers))


def component(
    name: str,
    *args: Any,
    artifact: str = "",
    libraries: Sequence[str] = (),
) -> ComponentStep:
    return ComponentStep(
        name=name, artifact=artifact, args=list(args), libraries=list(libraries),
    )


# ---------------------------------------------------------------------------
# Static validation
# ---------------------------------------------------------------------------


def validate_plan(steps: Sequence[Any]) -> List[str]:
    """Return every ordering/naming problem found in *steps*.

    An empty list means the plan can run front to back without any step
    referencing an address that does not exist yet.
    """
    problems: List[str] = []
    library_names: Set[str] = {
        s.name for s in steps if isinstance(s, LibraryStep)
    }
    component_names: Set[str] = {
        s.name for s in steps if isinstance(s, ComponentStep)
    }
    declared = library_names | component_names
    provisioned: Set[str] = set()
    linked: Dict[str, Set[str]] = {}

    for idx, step in enumerate(steps, start=1):
        if isinstance(step, LinkStep):
            if step.library not in library_names:
                problems.append(
                    f"step {idx}: '{step.library}' is not a declared library"
                )
            elif step.library not in provisioned:
                problems.append(
                    f"step {idx}: library '{step.library}' is linked "
                    "before it is provisioned"
                )
            for consumer in step.consumers:
                if consumer not in component_names:
                    problems.append(
                        f"step {idx}: unknown link consumer '{consumer}'"
                    )
                elif consumer in provisioned:
                    problems.append(
                        f"step {idx}: consumer '{consumer}' is already "
                        "provisioned"
                    )
                else:
                    linked.setdefault(consumer, set()).add(step.library)
            continue

        if step.name in provisioned:
            problems.append(f"step {idx}: duplicate name '{step.name}'")

        if isinstance(step, ComponentStep):
            for name in step.references:
                if name not in declared:
                    problems.append(
                        f"step {idx}: '{step.name}' references unknown "
                        f"name '{name}'"
                    )
                elif name not in provisioned:
                    problems.append(
                        f"step {idx}: '{step.name}' references '{name}' "
                        "before it is provisioned"
                    )
            for lib in step.libraries:
                if lib not in linked.get(step.name, set()):
                    problems.append(
                        f"step {idx}: library '{lib}' is not linked into "
                        f"'{step.name}' before provisioning"
                    )

        provisioned.add(step.name)

    return problems


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_plan(path: Union[str, Path]) -> DeploymentPlan:
    """Load and validate a plan YAML file.

    Raises:
        ConfigurationError: File missing, unparsable, schema-invalid, or the
            step order fails :func:`validate_plan`.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Plan file not found: {path}")

    try:
        with open(path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Plan file {path} is not valid YAML: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Plan file {path} must be a mapping with 'steps'")

    try:
        plan = DeploymentPlan.model_validate({"steps": raw.get("steps") or []})
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid plan {path}: {exc}") from exc

    problems = validate_plan(plan.steps)
    if problems:
        raise ConfigurationError(
            f"Plan {path} is not correctly ordered: " + "; ".join(problems)
        )
    return plan


# ---------------------------------------------------------------------------
# Built-in plan
# ---------------------------------------------------------------------------

#: Library linked into the handshake contracts.
BYTES_CONSUMERS = ("IBCClient", "IBCConnection", "IBCChannel")


def ibc_core_plan() -> DeploymentPlan:
    """The IBC core contract set in dependency order.

    ProvableStore backs every handler; each handler takes the addresses of
    the ones before it, and SimpleTokenModule sits on top of the router.
    """
    return DeploymentPlan(
        steps=[
            component("Migrations", artifact="contracts/Migrations.sol:Migrations"),
            library("Bytes", artifact="contracts/lib/Bytes.sol:Bytes"),
            link("Bytes", *BYTES_CONSUMERS),
            component(
                "ProvableStore",
                artifact="contracts/core/ProvableStore.sol:ProvableStore",
            ),
            component(
                "IBCClient",
                ref("ProvableStore"),
                artifact="contracts/core/IBCClient.sol:IBCClient",
                libraries=["Bytes"],
            ),
            component(
                "IBCConnection",
                ref("ProvableStore"),
                ref("IBCClient"),
                artifact="contracts/core/IBCConnection.sol:IBCConnection",
                libraries=["Bytes"],
            ),
            component(
                "IBCChannel",
                ref("ProvableStore"),
                ref("IBCClient"),
                ref("IBCConnection"),
                artifact="contracts/core/IBCChannel.sol:IBCChannel",
                libraries=["Bytes"],
            ),
            component(
                "IBCRoutingModule",
                ref("ProvableStore"),
                ref("IBCChannel"),
                artifact="contracts/core/IBCRoutingModule.sol:IBCRoutingModule",
            ),
            component(
                "SimpleTokenModule",
                ref("IBCRoutingModule"),
                artifact="contracts/app/SimpleTokenModule.sol:SimpleTokenModule",
            ),
        ],
    )
