"""Orchestration workflows (deploy, render, plan check)."""

from ibc_deploy.workflow.deploy import (
    DEFAULT_NETWORK,
    EXIT_CONFIG_ERROR,
    EXIT_PROVISIONING_FAILURE,
    EXIT_RENDER_FAILURE,
    EXIT_SUCCESS,
    EXIT_TOOLCHAIN,
    build_provisioner,
    resolve_plan,
    run_deploy_workflow,
    run_plan_check,
    run_render_only,
)

__all__ = [
    "DEFAULT_NETWORK",
    "EXIT_CONFIG_ERROR",
    "EXIT_PROVISIONING_FAILURE",
    "EXIT_RENDER_FAILURE",
    "EXIT_SUCCESS",
    "EXIT_TOOLCHAIN",
    "build_provisioner",
    "resolve_plan",
    "run_deploy_workflow",
    "run_plan_check",
    "run_render_only",
]
