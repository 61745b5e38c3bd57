"""Tests for configuration precedence and executable discovery."""

import sys

import pytest

from mermaid_pdf.config import Config


def test_defaults(tmp_path, monkeypatch):
    monkeypatch.setattr("mermaid_pdf.config.shutil.which", lambda name: None)
    config = Config(environ={}, base_dir=tmp_path)

    assert config.get_mmdc_path() == "mmdc"
    assert config.get_puppeteer_config() is None
    assert config.get_render_timeout() == 60.0
    assert config.get_max_concurrent_renders() == 4
    assert config.get_preview_timeout() == 90.0
    assert config.get_pdf_timeout() == 30.0
    assert config.get_debug() is False
    assert config.get_host() == "127.0.0.1"
    assert config.get_port() == 3333


def test_environment_overrides_defaults(tmp_path):
    config = Config(environ={
        "MERMAID_PDF_MMDC": "/usr/local/bin/mmdc",
        "MERMAID_PDF_MAX_RENDERS": "8",
        "MERMAID_PDF_RENDER_TIMEOUT": "15",
        "MERMAID_PDF_DEBUG": "true",
        "PORT": "8080",
        "MERMAID_PDF_TEMP_DIR": str(tmp_path),
    }, base_dir=tmp_path)

    assert config.get_mmdc_path() == "/usr/local/bin/mmdc"
    assert config.get_max_concurrent_renders() == 8
    assert config.get_render_timeout() == 15.0
    assert config.get_debug() is True
    assert config.get_port() == 8080
    assert config.get_temp_dir() == str(tmp_path)


def test_explicit_overrides_win(tmp_path):
    config = Config({"max_concurrent_renders": 2, "debug": None}, environ={"MERMAID_PDF_MAX_RENDERS": "8"}, base_dir=tmp_path)
    assert config.get_max_concurrent_renders() == 2
    assert config.get_debug() is False


def test_unknown_key_is_rejected():
    with pytest.raises(ValueError, match="Unknown configuration key"):
        Config({"colour": "blue"}, environ={})


@pytest.mark.parametrize("raw", ["abc", "0", "-3"])
def test_bad_numbers_fall_back(raw, tmp_path, capsys):
    config = Config(environ={"MERMAID_PDF_MAX_RENDERS": raw}, base_dir=tmp_path)
    assert config.get_max_concurrent_renders() == 4
    assert "max_concurrent_renders" in capsys.readouterr().err


@pytest.mark.skipif(sys.platform == "win32", reason="bundled binary is mmdc.cmd on Windows")
def test_bundled_mmdc_is_preferred(tmp_path, monkeypatch):
    monkeypatch.setattr("mermaid_pdf.config.shutil.which", lambda name: "/usr/bin/mmdc")
    bundled = tmp_path / "node_modules" / ".bin" / "mmdc"
    bundled.parent.mkdir(parents=True)
    bundled.write_text("")

    assert Config(environ={}, base_dir=tmp_path).get_mmdc_path() == str(bundled)


def test_mmdc_on_path(tmp_path, monkeypatch):
    monkeypatch.setattr("mermaid_pdf.config.shutil.which", lambda name: "/usr/bin/mmdc")
    assert Config(environ={}, base_dir=tmp_path).get_mmdc_path() == "/usr/bin/mmdc"


def test_puppeteer_config_next_to_project(tmp_path):
    (tmp_path / "puppeteer-config.json").write_text('{"args": ["--no-sandbox"]}')
    config = Config(environ={}, base_dir=tmp_path)
    assert config.get_puppeteer_config() == str(tmp_path / "puppeteer-config.json")
