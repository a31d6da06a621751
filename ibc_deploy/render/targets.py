"""Render target parsing.

The process is configured by a single environment string::

    CONF_TPL=OUT_1:TPL_1:OUT_2:TPL_2:...

which is captured once into an immutable :class:`RenderConfig` and then
split into ``(output_path, template_path)`` pairs.
"""

from __future__ import annotations

import os
from typing import List, Mapping, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field

from ibc_deploy.errors import ConfigurationError

#: Environment variable carrying the output/template pairs.
CONF_TPL_ENV: str = "CONF_TPL"

#: Separator between tokens of :data:`CONF_TPL_ENV`.
DEFAULT_DELIMITER: str = ":"


class RenderTarget(NamedTuple):
    """One configuration file to generate."""

    output_path: str
    template_path: str


class RenderConfig(BaseModel):
    """Renderer configuration, built once at process start."""

    model_config = ConfigDict(frozen=True)

    spec: str
    delimiter: str = Field(default=DEFAULT_DELIMITER, min_length=1)

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        *,
        var: str = CONF_TPL_ENV,
        delimiter: str = DEFAULT_DELIMITER,
    ) -> "RenderConfig":
        """Capture *var* from *env* (default ``os.environ``).

        Raises:
            ConfigurationError: The variable is unset or empty.
        """
        source = os.environ if env is None else env
        raw = source.get(var, "")
        if not raw:
            raise ConfigurationError(
                f"required configuration is missing: "
                f"You must set environment variable '{var}'"
            )
        return cls(spec=raw, delimiter=delimiter)

    def targets(self) -> List[RenderTarget]:
        return parse_targets(self.spec, self.delimiter)


def parse_targets(spec: Optional[str], delimiter: str = DEFAULT_DELIMITER) -> List[RenderTarget]:
    """Split *spec* on *delimiter* and pair tokens in order.

    Examples:
        >>> parse_targets("a.conf:a.tpl:b.conf:b.tpl", ":")
        [RenderTarget(output_path='a.conf', template_path='a.tpl'), RenderTarget(output_path='b.conf', template_path='b.tpl')]

    Raises:
        ConfigurationError: *spec* is missing/empty, has an odd token count,
            or contains an empty path.
    """
    if not spec:
        raise ConfigurationError("required configuration is missing")
    if not delimiter:
        raise ConfigurationError("delimiter must not be empty")

    tokens = spec.split(delimiter)
    if len(tokens) % 2:
        raise ConfigurationError(
            f"invalid pair found: '{tokens[-1]}' has no template "
            f"({len(tokens)} tokens)"
        )
    if any(not t for t in tokens):
        raise ConfigurationError(f"invalid pair found: empty path in '{spec}'")
    return [
        RenderTarget(output_path=tokens[i], template_path=tokens[i + 1])
        for i in range(0, len(tokens), 2)
    ]
