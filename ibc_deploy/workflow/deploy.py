"""Orchestrator for deploy → record → render.

Implements the two-phase execution model:

1. **Deploy** — run the fixed plan; every address is recorded as soon as
   its step completes.  Any failure aborts and nothing is persisted.
2. **Render** — publish the frozen address mapping into every
   ``(output, template)`` pair named by ``CONF_TPL``.

The render configuration is read and parsed **before** the first
provisioning call, so a missing or malformed ``CONF_TPL`` costs nothing
on-chain and writes no file.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from ibc_deploy import ui
from ibc_deploy.deploy.forge import ForgeProvisioner
from ibc_deploy.deploy.orchestrator import Deployer
from ibc_deploy.deploy.plan import DeploymentPlan, ibc_core_plan, load_plan, validate_plan
from ibc_deploy.deploy.provisioner import DryRunProvisioner, Provisioner
from ibc_deploy.errors import (
    ConfigurationError,
    ProvisioningError,
    UnresolvedReferenceError,
)
from ibc_deploy.render.renderer import ConfigFanOut
from ibc_deploy.render.targets import RenderConfig
from ibc_deploy.state.models import DeploymentRecord
from ibc_deploy.state.store import (
    latest_deployment_record,
    load_deployment_record,
    write_deployment_record,
)

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_PROVISIONING_FAILURE = 2
EXIT_RENDER_FAILURE = 3
EXIT_TOOLCHAIN = 4

DEFAULT_NETWORK = "localnet"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _prepare_fanout(
    render_config: Optional[RenderConfig],
    env: Optional[Mapping[str, str]],
    continue_on_error: bool,
) -> ConfigFanOut:
    """Build and parse the fan-out; raises ConfigurationError."""
    cfg = render_config if render_config is not None else RenderConfig.from_env(env)
    fanout = ConfigFanOut(cfg, continue_on_error=continue_on_error)
    fanout.parse()
    logger.info("Render targets: %d", len(fanout.targets))
    return fanout


def _render(fanout: ConfigFanOut, addresses: Mapping[str, str]) -> int:
    ui.phase("RENDER")
    report = fanout.render(addresses)
    if report.success:
        return EXIT_SUCCESS

    for target, reason in report.failed:
        logger.error("  [FAIL] %s: %s", target.output_path, reason)
    for target in report.skipped:
        logger.error("  [SKIP] %s", target.output_path)
    ui.error_panel(
        "Render incomplete",
        "written: " + (", ".join(report.written) or "(none)") + "\n"
        "failed: " + ", ".join(t.output_path for t, _ in report.failed) + "\n"
        "skipped: " + (", ".join(t.output_path for t in report.skipped) or "(none)"),
    )
    return EXIT_RENDER_FAILURE


def resolve_plan(plan_path: Optional[str] = None) -> DeploymentPlan:
    """Load *plan_path*, or return the built-in IBC core plan."""
    if plan_path:
        return load_plan(plan_path)
    return ibc_core_plan()


def build_provisioner(
    *,
    network: str = DEFAULT_NETWORK,
    rpc_url: str = "",
    dry_run: bool = False,
    project_root: Optional[str] = None,
) -> Provisioner:
    """Return a :class:`DryRunProvisioner` or a :class:`ForgeProvisioner`."""
    if dry_run:
        return DryRunProvisioner(network=network)
    if not rpc_url:
        raise ConfigurationError("--rpc-url is required unless --dry-run is set")
    return ForgeProvisioner(rpc_url, project_root=project_root)


# ---------------------------------------------------------------------------
# Deploy workflow
# ---------------------------------------------------------------------------


def run_deploy_workflow(
    *,
    network: str = DEFAULT_NETWORK,
    rpc_url: str = "",
    plan_path: Optional[str] = None,
    dry_run: bool = False,
    render: bool = True,
    render_config: Optional[RenderConfig] = None,
    env: Optional[Mapping[str, str]] = None,
    project_root: Optional[str] = None,
    continue_on_error: bool = False,
    provisioner: Optional[Provisioner] = None,
) -> int:
    """End-to-end: validate config → deploy → persist record → render.

    Returns one of the ``EXIT_*`` constants.
    """
    # -- 0. Config (before any side effect) -----------------------------------
    ui.phase("CONFIG")
    fanout: Optional[ConfigFanOut] = None
    try:
        if render:
            fanout = _prepare_fanout(render_config, env, continue_on_error)
            ui.ok(f"{len(fanout.targets)} render target(s)")
        plan = resolve_plan(plan_path)
        if provisioner is None:
            provisioner = build_provisioner(
                network=network,
                rpc_url=rpc_url,
                dry_run=dry_run,
                project_root=project_root,
            )
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        ui.error_msg(str(exc))
        return EXIT_CONFIG_ERROR

    ui.ok(f"plan: {len(plan.steps)} step(s), {len(plan.declared_names)} contract(s)")

    # -- 1. Deploy ------------------------------------------------------------
    ui.phase("DEPLOY")
    try:
        addresses = Deployer(provisioner).provision_all(plan)
    except ProvisioningError as exc:
        logger.error(
            "Provisioning failed at step %s (%s): %s",
            exc.step_index, exc.step_name, exc,
        )
        ui.error_panel(
            "Deployment failed",
            f"step {exc.step_index}: {exc.step_name}\n{exc}\n\n"
            "No addresses were recorded and no config was rendered.",
        )
        return EXIT_TOOLCHAIN if exc.toolchain_missing else EXIT_PROVISIONING_FAILURE
    except UnresolvedReferenceError as exc:
        logger.error("Plan ordering bug: %s", exc)
        ui.error_msg(str(exc))
        return EXIT_PROVISIONING_FAILURE
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        ui.error_msg(str(exc))
        return EXIT_CONFIG_ERROR

    # -- 2. Record ------------------------------------------------------------
    record = DeploymentRecord(
        network=network,
        rpc_url=rpc_url,
        dry_run=dry_run,
        addresses=addresses.as_dict(),
        plan_steps=[s.describe() for s in plan.steps],
    )
    record_path = write_deployment_record(record)
    ui.address_table(addresses, title=f"Deployed on {network}")
    ui.info(f"record: {record_path}")

    # -- 3. Render ------------------------------------------------------------
    if fanout is None:
        logger.info("Rendering disabled, done.")
        ui.warn("rendering skipped (--no-render)")
        return EXIT_SUCCESS

    rc = _render(fanout, addresses)
    if rc == EXIT_SUCCESS:
        ui.success_panel(
            "Deployment complete",
            f"{len(addresses)} contract(s) on {network}\n"
            f"{len(fanout.targets)} config file(s) generated",
        )
    return rc


# ---------------------------------------------------------------------------
# Render-only workflow
# ---------------------------------------------------------------------------


def run_render_only(
    *,
    record_path: Optional[str] = None,
    network: Optional[str] = None,
    render_config: Optional[RenderConfig] = None,
    env: Optional[Mapping[str, str]] = None,
    continue_on_error: bool = False,
) -> int:
    """Re-render configs from a persisted :class:`DeploymentRecord`.

    Uses *record_path* when given, else the newest record (for *network*).
    """
    ui.phase("CONFIG")
    try:
        fanout = _prepare_fanout(render_config, env, continue_on_error)
        path = record_path or latest_deployment_record(network)
        if path is None:
            raise ConfigurationError(
                "No deployment record found"
                + (f" for network '{network}'" if network else "")
            )
        record = load_deployment_record(path)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        ui.error_msg(str(exc))
        return EXIT_CONFIG_ERROR

    ui.ok(f"record: {path} ({len(record.addresses)} address(es))")
    return _render(fanout, record.addresses)


# ---------------------------------------------------------------------------
# Plan check
# ---------------------------------------------------------------------------


def run_plan_check(plan_path: Optional[str] = None) -> int:
    """Print the plan step by step and report ordering problems."""
    ui.phase("PLAN")
    try:
        plan = resolve_plan(plan_path)
    except ConfigurationError as exc:
        ui.error_msg(str(exc))
        return EXIT_CONFIG_ERROR

    for idx, step in enumerate(plan.steps, start=1):
        ui.step(f"[{idx}/{len(plan.steps)}] {step.describe()}")

    problems = validate_plan(plan.steps)
    for problem in problems:
        ui.fail(problem)
    if problems:
        return EXIT_CONFIG_ERROR
    ui.ok(f"{len(plan.declared_names)} contract(s), order OK")
    return EXIT_SUCCESS
