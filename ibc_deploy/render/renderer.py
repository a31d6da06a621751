"""Address fan-out renderer — replaces ``${<Name>Address}`` tokens.

Every deployed name ``N`` is published to templates as ``${NAddress}``
(e.g. ``${IBCClientAddress}``).  Replacement is **text-level**, so the rest
of each template (key order, comments, formatting) survives byte-for-byte,
and identical inputs always give identical output.

Batch policy: targets render sequentially in parse order.  By default the
first failing target aborts the remaining ones; the :class:`RenderReport`
says which targets were written, which failed and which were skipped.
Pass ``continue_on_error=True`` to render best-effort instead.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ibc_deploy import ui
from ibc_deploy.errors import ConfigurationError, RenderError
from ibc_deploy.render.targets import RenderConfig, RenderTarget

logger = logging.getLogger(__name__)

# ── constants ────────────────────────────────────────────────────────

#: Suffix appended to a deployed name to form its placeholder key.
BINDING_SUFFIX: str = "Address"

_TOKEN_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


# ── bindings / text rendering ────────────────────────────────────────


def binding_key(name: str) -> str:
    """``IBCClient`` → ``IBCClientAddress``."""
    return f"{name}{BINDING_SUFFIX}"


def address_bindings(addresses: Mapping[str, str]) -> Dict[str, str]:
    """Turn an address mapping into template bindings."""
    return {binding_key(name): address for name, address in addresses.items()}


def render_template(template_text: str, bindings: Mapping[str, str]) -> str:
    """Replace all ``${KEY}`` tokens in *template_text*.

    Parameters
    ----------
    template_text:
        Raw template content.
    bindings:
        Mapping of key → value, keys without the ``${}`` wrapper.

    Returns
    -------
    str
        Template text with every ``${KEY}`` replaced by its value.

    Raises
    ------
    RenderError
        If the template uses a placeholder that has no binding.
    """
    unknown = sorted(
        {m.group(1) for m in _TOKEN_RE.finditer(template_text)} - set(bindings)
    )
    if unknown:
        raise RenderError(
            "placeholder(s) not found in address mapping: " + ", ".join(unknown)
        )

    # deterministic replacement order (sorted keys)
    result = template_text
    for key in sorted(bindings):
        result = result.replace("${" + key + "}", bindings[key])
    return result


# ── file rendering ───────────────────────────────────────────────────


def _atomic_write(dest: Path, payload: bytes) -> None:
    """Write *payload* to *dest* via a sibling temp file + ``os.replace``."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(dest.parent), prefix=f".{dest.name}.")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(payload)
        os.replace(tmp, dest)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def render_target(target: RenderTarget, bindings: Mapping[str, str]) -> str:
    """Render one target and write it, overwriting any existing file.

    Returns the output path written.

    Raises:
        RenderError: Template unreadable, unknown placeholder, or output
            unwritable.
    """
    src = Path(target.template_path)
    # bytes + decode keeps CRLF line endings intact
    try:
        template_text = src.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise RenderError(
            f"Template not readable: {target.template_path} ({exc})", target=target,
        ) from exc

    try:
        rendered = render_template(template_text, bindings)
    except RenderError as exc:
        raise RenderError(f"{target.template_path}: {exc}", target=target) from exc

    dest = Path(target.output_path)
    try:
        _atomic_write(dest, rendered.encode("utf-8"))
    except OSError as exc:
        raise RenderError(
            f"Output not writable: {target.output_path} ({exc})", target=target,
        ) from exc

    logger.info("generated file %s", target.output_path)
    ui.ok(f"generated file {target.output_path}")
    return target.output_path


# ── batch rendering ──────────────────────────────────────────────────


@dataclass
class RenderReport:
    """Outcome of :func:`render_all`."""

    written: List[str] = field(default_factory=list)
    failed: List[Tuple[RenderTarget, str]] = field(default_factory=list)
    skipped: List[RenderTarget] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed and not self.skipped


def render_all(
    targets: Sequence[RenderTarget],
    addresses: Mapping[str, str],
    *,
    continue_on_error: bool = False,
) -> RenderReport:
    """Render every target against the complete address mapping."""
    bindings = address_bindings(addresses)
    report = RenderReport()

    for idx, target in enumerate(targets):
        try:
            report.written.append(render_target(target, bindings))
        except RenderError as exc:
            logger.error("Render failed for %s: %s", target.output_path, exc)
            ui.fail(str(exc))
            report.failed.append((target, str(exc)))
            if not continue_on_error:
                report.skipped = list(targets[idx + 1:])
                if report.skipped:
                    logger.warning(
                        "Skipping %d remaining target(s) after failure.",
                        len(report.skipped),
                    )
                break

    logger.info(
        "Render finished: %d written, %d failed, %d skipped.",
        len(report.written), len(report.failed), len(report.skipped),
    )
    return report


# ── state machine wrapper ────────────────────────────────────────────


class RenderState(str, Enum):
    UNPARSED = "UNPARSED"
    TARGETS_READY = "TARGETS_READY"
    RENDERING = "RENDERING"
    DONE = "DONE"
    FAILED = "FAILED"


class ConfigFanOut:
    """Parse once, render once.

    ``UNPARSED → TARGETS_READY → RENDERING → DONE``; a parse failure moves
    straight to ``FAILED`` without touching any file.
    """

    def __init__(self, config: RenderConfig, *, continue_on_error: bool = False) -> None:
        self.config = config
        self.continue_on_error = continue_on_error
        self.state = RenderState.UNPARSED
        self.targets: List[RenderTarget] = []
        self.report: Optional[RenderReport] = None

    def parse(self) -> List[RenderTarget]:
        if self.state is not RenderState.UNPARSED:
            raise RuntimeError(f"parse() called in state {self.state.value}")
        try:
            self.targets = self.config.targets()
        except ConfigurationError:
            self.state = RenderState.FAILED
            raise
        self.state = RenderState.TARGETS_READY
        return self.targets

    def render(self, addresses: Mapping[str, str]) -> RenderReport:
        if self.state is RenderState.UNPARSED:
            self.parse()
        if self.state is not RenderState.TARGETS_READY:
            raise RuntimeError(f"render() called in state {self.state.value}")
        self.state = RenderState.RENDERING
        self.report = render_all(
            self.targets, addresses, continue_on_error=self.continue_on_error,
        )
        self.state = RenderState.DONE if self.report.success else RenderState.FAILED
        return self.report
