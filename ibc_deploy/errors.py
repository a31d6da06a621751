"""Exception taxonomy for ibc-deploy.

Library code raises these; :mod:`ibc_deploy.workflow` catches them and maps
each category to an exit code.  Nothing in this package retries.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "ConfigurationError",
    "IbcDeployError",
    "ProvisioningError",
    "RenderError",
    "UnresolvedReferenceError",
]


class IbcDeployError(Exception):
    """Base class for every error raised by ibc-deploy."""


class ConfigurationError(IbcDeployError, ValueError):
    """Missing or malformed configuration (env spec string, plan file)."""


class ProvisioningError(IbcDeployError, RuntimeError):
    """The provisioning environment rejected or failed a step.

    Attributes:
        step_index: 1-based position of the failing step in the plan, if known.
        step_name: Declared name of the failing step, if known.
        toolchain_missing: True when the external tool could not be found.
    """

    def __init__(
        self,
        message: str,
        *,
        step_index: Optional[int] = None,
        step_name: Optional[str] = None,
        toolchain_missing: bool = False,
    ) -> None:
        super().__init__(message)
        self.step_index = step_index
        self.step_name = step_name
        self.toolchain_missing = toolchain_missing


class UnresolvedReferenceError(IbcDeployError, RuntimeError):
    """A step referenced a name that has no recorded address yet."""

    def __init__(self, name: str, *, step_name: str = "") -> None:
        where = f" (referenced by '{step_name}')" if step_name else ""
        super().__init__(f"unresolved reference: '{name}'{where}")
        self.name = name
        self.step_name = step_name


class RenderError(IbcDeployError, RuntimeError):
    """A single render target could not be rendered or written."""

    def __init__(self, message: str, *, target: object = None) -> None:
        super().__init__(message)
        self.target = target
