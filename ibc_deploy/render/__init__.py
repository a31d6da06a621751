"""Template rendering of deployed addresses into config files."""

from ibc_deploy.render.renderer import (
    BINDING_SUFFIX,
    ConfigFanOut,
    RenderReport,
    RenderState,
    address_bindings,
    binding_key,
    render_all,
    render_target,
    render_template,
)
from ibc_deploy.render.targets import (
    CONF_TPL_ENV,
    DEFAULT_DELIMITER,
    RenderConfig,
    RenderTarget,
    parse_targets,
)

__all__ = [
    "BINDING_SUFFIX",
    "CONF_TPL_ENV",
    "ConfigFanOut",
    "DEFAULT_DELIMITER",
    "RenderConfig",
    "RenderReport",
    "RenderState",
    "RenderTarget",
    "address_bindings",
    "binding_key",
    "parse_targets",
    "render_all",
    "render_target",
    "render_template",
]
