"""Foundry ``forge create`` wrapper.

Deploys each contract as a subprocess so this package never reimplements
transaction signing or bytecode linking.  Library linking is done at deploy
time: :meth:`ForgeProvisioner.link` remembers the library address and every
later ``forge create`` for a consumer receives it via ``--libraries``.

Command shape::

    forge create <artifact> --rpc-url <url> --private-key <key> --broadcast --json \\
        [--libraries <lib-artifact>:<address> ...] \\
        [--constructor-args <arg> ...]
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ibc_deploy.deploy.provisioner import ProvisionRequest
from ibc_deploy.errors import ProvisioningError

logger = logging.getLogger(__name__)

#: Environment variable holding the deployer key.
PRIVATE_KEY_ENV: str = "IBC_DEPLOY_PRIVATE_KEY"

_REDACTED = "****"

# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------


@dataclass
class ForgeResult:
    """Parsed outcome of a ``forge`` CLI invocation."""

    command: str
    returncode: int
    stdout: str = ""
    stderr: str = ""
    json_body: Dict[str, Any] = field(default_factory=dict)
    deployed_to: str = ""
    transaction_hash: str = ""
    missing_binary: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and bool(self.deployed_to)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _redact(cmd: List[str]) -> str:
    out: List[str] = []
    hide_next = False
    for part in cmd:
        out.append(_REDACTED if hide_next else part)
        hide_next = part == "--private-key"
    return " ".join(out)


def _format_arg(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _run_forge(
    args: List[str],
    *,
    cwd: Optional[str] = None,
    extra_env: Optional[Dict[str, str]] = None,
) -> ForgeResult:
    """Run ``forge`` with *args* and return a :class:`ForgeResult`.

    Returns ``returncode=4`` when the binary is not on ``PATH`` and
    ``returncode=1`` for any other OS-level launch failure (permissions,
    a bad *cwd*).
    """
    cmd = ["forge", *args]
    env = {**os.environ}
    if extra_env:
        env.update(extra_env)

    printable = _redact(cmd)
    logger.info("Running: %s", printable)

    try:
        proc = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            env=env,
            cwd=cwd,
        )
    except OSError as exc:
        # a missing cwd also raises FileNotFoundError, naming the directory
        if isinstance(exc, FileNotFoundError) and not (cwd and exc.filename == cwd):
            return ForgeResult(
                command=printable,
                returncode=4,
                stderr="forge CLI not found on PATH",
                missing_binary=True,
            )
        return ForgeResult(
            command=printable,
            returncode=1,
            stderr=f"could not run forge: {exc}",
        )

    result = ForgeResult(
        command=printable,
        returncode=proc.returncode,
        stdout=proc.stdout.strip(),
        stderr=proc.stderr.strip(),
    )

    # forge may print warnings before the JSON line; take the last object.
    for line in reversed(result.stdout.splitlines()):
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            result.json_body = json.loads(line)
        except json.JSONDecodeError:
            continue
        break

    result.deployed_to = str(result.json_body.get("deployedTo", ""))
    result.transaction_hash = str(result.json_body.get("transactionHash", ""))
    return result


# ---------------------------------------------------------------------------
# Provisioner
# ---------------------------------------------------------------------------


class ForgeProvisioner:
    """Provision contracts on *rpc_url* with ``forge create``.

    Args:
        rpc_url: JSON-RPC endpoint of the target chain.
        private_key: Deployer key.  Defaults to ``$IBC_DEPLOY_PRIVATE_KEY``.
        project_root: Foundry project directory (``cwd`` for forge).
        library_artifacts: ``name -> artifact`` for libraries, needed to build
            ``--libraries`` values.  Filled automatically as libraries are
            provisioned through this instance.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        private_key: Optional[str] = None,
        project_root: Optional[str] = None,
        library_artifacts: Optional[Dict[str, str]] = None,
    ) -> None:
        if not rpc_url:
            raise ValueError("rpc_url must not be empty")
        self.rpc_url = rpc_url
        self.private_key = private_key or os.environ.get(PRIVATE_KEY_ENV, "")
        self.project_root = project_root
        self.library_artifacts: Dict[str, str] = dict(library_artifacts or {})
        # consumer -> ["<lib artifact>:<address>", ...]
        self._links: Dict[str, List[str]] = {}

    def build_create_args(self, request: ProvisionRequest) -> List[str]:
        """Return the ``forge`` argv (without the leading ``forge``)."""
        args = [
            "create",
            request.artifact,
            "--rpc-url", self.rpc_url,
            "--broadcast",
            "--json",
        ]
        if self.private_key:
            args += ["--private-key", self.private_key]
        for spec in self._links.get(request.name, []):
            args += ["--libraries", spec]
        if request.constructor_args:
            # --constructor-args is variadic, so it must come last
            args += ["--constructor-args"]
            args += [_format_arg(a) for a in request.constructor_args]
        return args

    def provision(self, request: ProvisionRequest) -> str:
        if not self.private_key:
            raise ProvisioningError(
                f"No deployer key: set {PRIVATE_KEY_ENV}", step_name=request.name,
            )

        result = _run_forge(self.build_create_args(request), cwd=self.project_root)

        if result.missing_binary:
            raise ProvisioningError(
                result.stderr, step_name=request.name, toolchain_missing=True,
            )
        if not result.success:
            raise ProvisioningError(
                f"forge create {request.artifact} failed "
                f"(rc={result.returncode}): "
                f"{result.stderr or result.stdout or '(no output)'}",
                step_name=request.name,
            )

        if ":" in request.artifact:
            self.library_artifacts.setdefault(request.name, request.artifact)
        logger.info(
            "forge create %s -> %s (tx %s)",
            request.artifact,
            result.deployed_to,
            result.transaction_hash or "?",
        )
        return result.deployed_to

    def link(self, library: str, address: str, consumers: Sequence[str]) -> None:
        artifact = self.library_artifacts.get(library, "")
        if ":" not in artifact:
            raise ProvisioningError(
                f"Library '{library}' needs a '<path>:<Name>' artifact to be "
                f"linked (got '{artifact or library}')",
                step_name=f"link:{library}",
            )
        spec = f"{artifact}:{address}"
        for consumer in consumers:
            self._links.setdefault(consumer, []).append(spec)
