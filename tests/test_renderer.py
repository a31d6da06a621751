"""Tests for ibc_deploy.render.renderer — substitution, writes, batch policy."""

from __future__ import annotations

from pathlib import Path

import pytest

from ibc_deploy.deploy.orchestrator import AddressMapping
from ibc_deploy.errors import ConfigurationError, RenderError
from ibc_deploy.render.renderer import (
    ConfigFanOut,
    RenderState,
    address_bindings,
    binding_key,
    render_all,
    render_target,
    render_template,
)
from ibc_deploy.render.targets import RenderConfig, RenderTarget


# ── fixtures ─────────────────────────────────────────────────────────

ADDRESSES = {
    "IBCClient": "0x1111111111111111111111111111111111111111",
    "IBCChannel": "0x2222222222222222222222222222222222222222",
    "SimpleTokenModule": "0x3333333333333333333333333333333333333333",
}

MINI_TEMPLATE = (
    '{\n'
    '  "ibc_client": "${IBCClientAddress}",\n'
    '  "ibc_channel": "${IBCChannelAddress}",\n'
    '  "token": "${SimpleTokenModuleAddress}"\n'
    '}\n'
)


def _mapping() -> AddressMapping:
    return AddressMapping(ADDRESSES).freeze()


def _target(tmp_path: Path, name: str, text: str = MINI_TEMPLATE) -> RenderTarget:
    tpl = tmp_path / f"{name}.tpl"
    tpl.write_text(text, encoding="utf-8")
    return RenderTarget(str(tmp_path / "out" / f"{name}.json"), str(tpl))


# ── TestBindings ─────────────────────────────────────────────────────


class TestBindings:
    def test_binding_key(self):
        assert binding_key("IBCClient") == "IBCClientAddress"

    def test_address_bindings(self):
        b = address_bindings(ADDRESSES)
        assert set(b) == {
            "IBCClientAddress", "IBCChannelAddress", "SimpleTokenModuleAddress",
        }
        assert b["IBCClientAddress"] == ADDRESSES["IBCClient"]

    def test_accepts_address_mapping(self):
        assert address_bindings(_mapping()) == address_bindings(ADDRESSES)


# ── TestRenderTemplate ───────────────────────────────────────────────


class TestRenderTemplate:
    def test_all_tokens_replaced(self):
        result = render_template(MINI_TEMPLATE, address_bindings(ADDRESSES))
        assert "${" not in result
        assert ADDRESSES["IBCChannel"] in result

    def test_preserves_non_token_text(self):
        result = render_template(MINI_TEMPLATE, address_bindings(ADDRESSES))
        assert result.startswith('{\n  "ibc_client": "0x1111')
        assert result.endswith("}\n")

    def test_unknown_placeholder_raises(self):
        with pytest.raises(RenderError, match="IBCConnectionAddress"):
            render_template("x: ${IBCConnectionAddress}\n", address_bindings(ADDRESSES))

    def test_unused_bindings_ok(self):
        assert render_template("static\n", address_bindings(ADDRESSES)) == "static\n"

    def test_non_placeholder_dollar_text_untouched(self):
        text = "price: $5 ${IBCClientAddress} $HOME\n"
        result = render_template(text, address_bindings(ADDRESSES))
        assert result == f"price: $5 {ADDRESSES['IBCClient']} $HOME\n"

    def test_repeated_placeholder(self):
        text = "${IBCClientAddress}/${IBCClientAddress}"
        addr = ADDRESSES["IBCClient"]
        assert render_template(text, address_bindings(ADDRESSES)) == f"{addr}/{addr}"

    def test_idempotent(self):
        b = address_bindings(ADDRESSES)
        assert render_template(MINI_TEMPLATE, b) == render_template(MINI_TEMPLATE, b)


# ── TestRenderTarget ─────────────────────────────────────────────────


class TestRenderTarget:
    def test_writes_output(self, tmp_path: Path):
        t = _target(tmp_path, "relayer")
        written = render_target(t, address_bindings(ADDRESSES))
        assert written == t.output_path
        content = Path(t.output_path).read_text(encoding="utf-8")
        assert ADDRESSES["SimpleTokenModule"] in content

    def test_overwrites_existing(self, tmp_path: Path):
        t = _target(tmp_path, "relayer")
        out = Path(t.output_path)
        out.parent.mkdir(parents=True)
        out.write_text("stale content that is much longer than the output " * 50)
        render_target(t, address_bindings(ADDRESSES))
        assert "stale" not in out.read_text()

    def test_no_temp_files_left(self, tmp_path: Path):
        t = _target(tmp_path, "relayer")
        render_target(t, address_bindings(ADDRESSES))
        assert [p.name for p in Path(t.output_path).parent.iterdir()] == ["relayer.json"]

    def test_same_target_twice_byte_identical(self, tmp_path: Path):
        t = _target(tmp_path, "relayer")
        b = address_bindings(ADDRESSES)
        render_target(t, b)
        first = Path(t.output_path).read_bytes()
        render_target(t, b)
        assert Path(t.output_path).read_bytes() == first

    def test_missing_template(self, tmp_path: Path):
        t = RenderTarget(str(tmp_path / "o.json"), str(tmp_path / "nope.tpl"))
        with pytest.raises(RenderError, match="Template not readable") as info:
            render_target(t, address_bindings(ADDRESSES))
        assert info.value.target == t
        assert not Path(t.output_path).exists()

    def test_unknown_placeholder_writes_nothing(self, tmp_path: Path):
        t = _target(tmp_path, "bad", "${NopeAddress}\n")
        with pytest.raises(RenderError, match="NopeAddress"):
            render_target(t, address_bindings(ADDRESSES))
        assert not Path(t.output_path).exists()

    def test_crlf_line_endings_preserved(self, tmp_path: Path):
        tpl = tmp_path / "crlf.tpl"
        tpl.write_bytes(b"c=${IBCClientAddress}\r\nstatic\r\n")
        t = RenderTarget(str(tmp_path / "crlf.conf"), str(tpl))
        render_target(t, address_bindings(ADDRESSES))
        expected = f"c={ADDRESSES['IBCClient']}\r\nstatic\r\n".encode("utf-8")
        assert Path(t.output_path).read_bytes() == expected

    def test_non_utf8_template(self, tmp_path: Path):
        tpl = tmp_path / "latin1.tpl"
        tpl.write_bytes(b"c=\xff${IBCClientAddress}\n")
        t = RenderTarget(str(tmp_path / "o.conf"), str(tpl))
        with pytest.raises(RenderError, match="Template not readable"):
            render_target(t, address_bindings(ADDRESSES))
        assert not Path(t.output_path).exists()

    def test_unwritable_output(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a dir")
        tpl = tmp_path / "t.tpl"
        tpl.write_text("static\n")
        t = RenderTarget(str(blocker / "o.json"), str(tpl))
        with pytest.raises(RenderError, match="Output not writable"):
            render_target(t, {})


# ── TestRenderAll ────────────────────────────────────────────────────


class TestRenderAll:
    def test_all_written_in_order(self, tmp_path: Path):
        targets = [_target(tmp_path, n) for n in ("a", "b", "c")]
        report = render_all(targets, _mapping())
        assert report.success
        assert report.written == [t.output_path for t in targets]

    def test_abort_remaining_on_failure(self, tmp_path: Path):
        a = _target(tmp_path, "a")
        bad = RenderTarget(str(tmp_path / "out" / "b.json"), str(tmp_path / "missing.tpl"))
        c = _target(tmp_path, "c")
        report = render_all([a, bad, c], _mapping())
        assert not report.success
        assert report.written == [a.output_path]
        assert [t for t, _ in report.failed] == [bad]
        assert report.skipped == [c]
        assert not Path(c.output_path).exists()

    def test_continue_on_error(self, tmp_path: Path):
        a = _target(tmp_path, "a")
        bad = RenderTarget(str(tmp_path / "out" / "b.json"), str(tmp_path / "missing.tpl"))
        c = _target(tmp_path, "c")
        report = render_all([a, bad, c], _mapping(), continue_on_error=True)
        assert report.written == [a.output_path, c.output_path]
        assert len(report.failed) == 1
        assert report.skipped == []
        assert not report.success

    def test_non_utf8_template_reported_and_skipped(self, tmp_path: Path):
        tpl = tmp_path / "latin1.tpl"
        tpl.write_bytes(b"c=\xff\n")
        bad = RenderTarget(str(tmp_path / "out" / "bad.conf"), str(tpl))
        good = _target(tmp_path, "good")
        report = render_all([bad, good], _mapping(), continue_on_error=True)
        assert [t for t, _ in report.failed] == [bad]
        assert report.written == [good.output_path]

    def test_empty_target_list(self):
        assert render_all([], _mapping()).success


# ── TestConfigFanOut ─────────────────────────────────────────────────


class TestConfigFanOut:
    def test_state_transitions(self, tmp_path: Path):
        t = _target(tmp_path, "relayer")
        fan = ConfigFanOut(RenderConfig(spec=f"{t.output_path}:{t.template_path}"))
        assert fan.state is RenderState.UNPARSED
        fan.parse()
        assert fan.state is RenderState.TARGETS_READY
        report = fan.render(_mapping())
        assert fan.state is RenderState.DONE
        assert report.written == [t.output_path]

    def test_parse_failure_is_fatal(self, tmp_path: Path):
        fan = ConfigFanOut(RenderConfig(spec="only-one-token"))
        with pytest.raises(ConfigurationError):
            fan.parse()
        assert fan.state is RenderState.FAILED
        with pytest.raises(RuntimeError):
            fan.render(_mapping())

    def test_render_parses_implicitly(self, tmp_path: Path):
        t = _target(tmp_path, "relayer")
        fan = ConfigFanOut(RenderConfig(spec=f"{t.output_path}:{t.template_path}"))
        fan.render(_mapping())
        assert fan.state is RenderState.DONE

    def test_render_failure_state(self, tmp_path: Path):
        out = tmp_path / "o.json"
        fan = ConfigFanOut(RenderConfig(spec=f"{out}:{tmp_path / 'missing.tpl'}"))
        report = fan.render(_mapping())
        assert fan.state is RenderState.FAILED
        assert not report.success

    def test_cannot_render_twice(self, tmp_path: Path):
        t = _target(tmp_path, "relayer")
        fan = ConfigFanOut(RenderConfig(spec=f"{t.output_path}:{t.template_path}"))
        fan.render(_mapping())
        with pytest.raises(RuntimeError):
            fan.render(_mapping())
