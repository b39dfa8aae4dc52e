from __future__ import annotations

import io
import json
import sys
from pathlib import Path

import pytest
from rich.console import Console

from story_portfolio import cli
from story_portfolio.config import RenderConfig
from story_portfolio.logging import setup_logging
from story_portfolio.util.errors import ConfigError, InputError


def _write_document(path: Path, **overrides) -> Path:
    doc = {
        "walletAddress": "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0",
        "network": "testnet",
        "assets": [
            {"ipId": "0xroot00000000000000", "licenseType": "commercial-remix", "royaltiesEarned": 5},
            {"ipId": "0xchild0000000000000", "parentIpId": "0xroot00000000000000"},
        ],
    }
    doc.update(overrides)
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path


def _console() -> Console:
    return Console(file=io.StringIO(), width=120)


def test_cmd_render_writes_report_cache_and_graph(tmp_path: Path) -> None:
    cfg = RenderConfig(
        input=_write_document(tmp_path / "portfolio.json"),
        output=tmp_path / "out" / "portfolio.html",
        cache=tmp_path / "cache.json",
        graph_dir=tmp_path / "graph",
    )
    console = _console()

    assert cli.cmd_render(cfg, console=console) == 0

    html = cfg.output.read_text(encoding="utf-8")
    assert "<title>IP Portfolio - 0x742d...bEb0</title>" in html
    cached = json.loads((tmp_path / "cache.json").read_text(encoding="utf-8"))
    assert cached["statistics"]["totalAssets"] == 2
    assert cached["assets"][0]["childIpIds"] == ["0xchild0000000000000"]
    edges = (tmp_path / "graph" / "graph_edges.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(edges) == 1

    summary = console.file.getvalue()
    assert "Portfolio Generated" in summary
    assert "2 IP assets" in summary
    assert "Open in browser to view your portfolio" in summary


def test_cmd_render_cli_values_override_document(tmp_path: Path) -> None:
    cfg = RenderConfig(
        input=_write_document(tmp_path / "portfolio.json"),
        output=tmp_path / "portfolio.html",
        wallet_address="0xfromcli",
        network="mainnet",
    )

    cli.cmd_render(cfg, console=_console())

    html = cfg.output.read_text(encoding="utf-8")
    assert "0xfromcli" in html
    assert "network-mainnet" in html


def test_cmd_render_accepts_bare_asset_list_with_wallet(tmp_path: Path) -> None:
    src = tmp_path / "assets.json"
    src.write_text(json.dumps([{"ipId": "a"}]), encoding="utf-8")
    cfg = RenderConfig(input=src, output=tmp_path / "portfolio.html", wallet_address="0xabc")

    assert cli.cmd_render(cfg, console=_console()) == 0
    assert "network-testnet" in cfg.output.read_text(encoding="utf-8")


def test_cmd_render_requires_input_and_wallet(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        cli.cmd_render(RenderConfig(), console=_console())

    src = tmp_path / "assets.json"
    src.write_text("[]", encoding="utf-8")
    with pytest.raises(ConfigError):
        cli.cmd_render(RenderConfig(input=src, output=tmp_path / "x.html"), console=_console())


def test_cmd_render_missing_input_file(tmp_path: Path) -> None:
    with pytest.raises(InputError):
        cli.cmd_render(RenderConfig(input=tmp_path / "missing.json"), console=_console())


def test_main_maps_errors_to_exit_codes(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(setup_logging, "_configured", True, raising=False)
    monkeypatch.delenv("STORY_PORTFOLIO_INPUT", raising=False)

    monkeypatch.setattr(sys, "argv", ["story-portfolio", "render", "--output", str(tmp_path / "x.html")])
    with pytest.raises(SystemExit) as exc:
        cli.main()
    assert exc.value.code == 2

    monkeypatch.setattr(sys, "argv", ["story-portfolio", "render", "--input", str(tmp_path / "missing.json")])
    with pytest.raises(SystemExit) as exc:
        cli.main()
    assert exc.value.code == 3


def test_main_renders_successfully(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(setup_logging, "_configured", True, raising=False)
    src = _write_document(tmp_path / "portfolio.json")
    out = tmp_path / "portfolio.html"
    monkeypatch.setattr(
        sys, "argv", ["story-portfolio", "render", "--input", str(src), "--output", str(out), "--renderer", "html"]
    )

    with pytest.raises(SystemExit) as exc:
        cli.main()

    assert exc.value.code == 0
    assert '<div class="html-fallback">' in out.read_text(encoding="utf-8")
