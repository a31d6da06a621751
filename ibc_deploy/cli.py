"""CLI entry point for ibc-deploy, built on cli-core-yo.

Provides ``deploy``, ``render``, and ``plan`` commands for provisioning the
IBC core contracts and publishing their addresses into config templates.

Usage::

    ibc-deploy --help
    CONF_TPL=relayer.json:relayer.json.tpl ibc-deploy deploy --rpc-url http://127.0.0.1:8545
    CONF_TPL=relayer.json:relayer.json.tpl ibc-deploy render --network localnet
    ibc-deploy plan --plan config/ibc_plan.yaml
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

import typer
from cli_core_yo import output
from cli_core_yo.app import create_app
from cli_core_yo.runtime import _reset, initialize
from cli_core_yo.spec import CliSpec, XdgSpec

from ibc_deploy.render.targets import CONF_TPL_ENV

# ── App specification ────────────────────────────────────────────────────────

spec = CliSpec(
    prog_name="ibc-deploy",
    app_display_name="IBC Deploy",
    dist_name="ibc-deploy",
    root_help=(
        "Deploy the IBC core contracts in dependency order and render "
        "their addresses into configuration templates."
    ),
    xdg=XdgSpec(app_dir_name="ibc-deploy"),
)

app = create_app(spec)


def _require_conf_tpl() -> None:
    """Usage-style exit when ``CONF_TPL`` is missing."""
    if not os.environ.get(CONF_TPL_ENV):
        output.error(f"You must set environment variable '{CONF_TPL_ENV}'")
        output.detail(
            f"Format: {CONF_TPL_ENV}=OUTPUT_1:TEMPLATE_1[:OUTPUT_2:TEMPLATE_2...]"
        )
        raise typer.Exit(1)


# ── Root callback (global options) ───────────────────────────────────────────


@app.callback()
def _root_callback(
    json_flag: bool = typer.Option(
        False, "--json", "-j", help="Output as JSON."
    ),
) -> None:
    """IBC contract deployment control plane."""
    _reset()
    debug = os.environ.get("CLI_CORE_YO_DEBUG") == "1"
    xdg_paths = app._cli_core_yo_xdg_paths  # type: ignore[attr-defined]
    initialize(spec, xdg_paths, json_mode=json_flag, debug=debug)


# ── deploy command ───────────────────────────────────────────────────────────


@app.command()
def deploy(
    rpc_url: str = typer.Option(
        "",
        "--rpc-url",
        envvar="IBC_DEPLOY_RPC_URL",
        help="JSON-RPC endpoint of the target chain.",
    ),
    network: str = typer.Option(
        "localnet",
        "--network",
        help="Network label used in the deployment record name.",
    ),
    plan: Optional[str] = typer.Option(
        None,
        "--plan",
        help="Path to a plan YAML. Default: built-in IBC core plan.",
    ),
    project_root: Optional[str] = typer.Option(
        None,
        "--project-root",
        help="Foundry project directory (forge working directory).",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Use deterministic fake addresses instead of deploying.",
    ),
    no_render: bool = typer.Option(
        False,
        "--no-render",
        help="Deploy and record addresses only; skip CONF_TPL rendering.",
    ),
    keep_going: bool = typer.Option(
        False,
        "--keep-going",
        help="Render remaining targets after a failed one.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug logging.",
    ),
) -> None:
    """Deploy all contracts, then render every CONF_TPL target.

    Environment variables:
      CONF_TPL                 OUT:TPL pairs to render (required unless --no-render).
      IBC_DEPLOY_PRIVATE_KEY   Deployer key passed to forge.
      IBC_DEPLOY_RPC_URL       Default for --rpc-url.
    """
    from ibc_deploy.workflow.deploy import run_deploy_workflow

    if debug:
        logging.basicConfig(level=logging.DEBUG)

    if not no_render:
        _require_conf_tpl()

    output.action(f"Deploying to {network} ...")
    rc = run_deploy_workflow(
        network=network,
        rpc_url=rpc_url,
        plan_path=plan,
        dry_run=dry_run,
        render=not no_render,
        project_root=project_root,
        continue_on_error=keep_going,
    )
    raise typer.Exit(rc)


# ── render command ───────────────────────────────────────────────────────────


@app.command()
def render(
    record: Optional[str] = typer.Option(
        None,
        "--record",
        help="Deployment record JSON. Default: newest record.",
    ),
    network: Optional[str] = typer.Option(
        None,
        "--network",
        help="Pick the newest record for this network.",
    ),
    keep_going: bool = typer.Option(
        False,
        "--keep-going",
        help="Render remaining targets after a failed one.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug logging.",
    ),
) -> None:
    """Render CONF_TPL targets from a previous deployment record."""
    from ibc_deploy.workflow.deploy import run_render_only

    if debug:
        logging.basicConfig(level=logging.DEBUG)

    _require_conf_tpl()

    output.action("Rendering configs ...")
    rc = run_render_only(
        record_path=record,
        network=network,
        continue_on_error=keep_going,
    )
    raise typer.Exit(rc)


# ── plan command ─────────────────────────────────────────────────────────────


@app.command()
def plan(
    plan_path: Optional[str] = typer.Option(
        None,
        "--plan",
        help="Path to a plan YAML. Default: built-in IBC core plan.",
    ),
) -> None:
    """Show the deployment plan and check its ordering."""
    from ibc_deploy.workflow.deploy import run_plan_check

    rc = run_plan_check(plan_path)
    if rc == 0:
        output.success("Plan is correctly ordered.")
    raise typer.Exit(rc)


# ── Entry point ──────────────────────────────────────────────────────────────


def main() -> int:
    """Run the CLI and return an exit code."""
    try:
        app()
        return 0
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 0


if __name__ == "__main__":
    sys.exit(main())
