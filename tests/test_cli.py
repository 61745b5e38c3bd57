"""Tests for the mermaid-pdf command line."""

import pytest

from mermaid_pdf import cli
from mermaid_pdf.pipeline import DocumentConverter

from conftest import FakePdfGenerator, SCENARIO_MARKDOWN, StubRenderer


@pytest.fixture
def use_converter(monkeypatch):
    """Make the CLI build the given converter instead of one wired to mmdc and Chromium."""
    def install(converter):
        monkeypatch.setattr(cli.DocumentConverter, "from_config", lambda config, progress=False: converter)
        return converter
    return install


@pytest.fixture
def plan(tmp_path):
    path = tmp_path / "my.plan.md"
    path.write_text(SCENARIO_MARKDOWN, encoding="utf-8")
    return path


def test_missing_arguments(capsys):
    assert cli.main([]) == 1
    assert "required" in capsys.readouterr().err


def test_converts_to_pdf(use_converter, plan, tmp_path, capsys):
    fake_pdf = FakePdfGenerator()
    use_converter(DocumentConverter(StubRenderer(), fake_pdf))
    output = tmp_path / "out.pdf"

    assert cli.main([str(plan), str(output), "--format", "Letter", "--margin", "1in", "--no-progress"]) == 0

    assert output.read_bytes() == b"%PDF-1.4 fake"
    _, options = fake_pdf.calls[0]
    assert options.page_format.value == "Letter"
    assert options.margins.left == "1in"
    assert options.print_background is True
    assert "Done" in capsys.readouterr().out


def test_no_background_and_scale(use_converter, plan, tmp_path):
    fake_pdf = FakePdfGenerator()
    use_converter(DocumentConverter(StubRenderer(), fake_pdf))

    assert cli.main([str(plan), str(tmp_path / "out.pdf"), "--no-background", "--scale", "9"]) == 0

    _, options = fake_pdf.calls[0]
    assert options.print_background is False
    assert options.scale == 2.0


def test_output_name_is_sanitized(use_converter, plan, tmp_path):
    use_converter(DocumentConverter(StubRenderer(), FakePdfGenerator()))

    assert cli.main([str(plan), str(tmp_path / "my report")]) == 0

    assert (tmp_path / "my_report.pdf").exists()


def test_html_output(use_converter, plan, tmp_path):
    fake_pdf = FakePdfGenerator()
    use_converter(DocumentConverter(StubRenderer(), fake_pdf))
    output = tmp_path / "preview.html"

    assert cli.main([str(plan), str(output), "--html"]) == 0

    assert '<figure class="mermaid-diagram"><svg>ok</svg></figure>' in output.read_text(encoding="utf-8")
    assert fake_pdf.calls == []


def test_failed_diagrams_are_reported(use_converter, plan, tmp_path, capsys):
    use_converter(DocumentConverter(StubRenderer(fail_all=True), FakePdfGenerator()))

    assert cli.main([str(plan), str(tmp_path / "out.pdf")]) == 0

    assert "1 of 1 diagram(s) could not be rendered" in capsys.readouterr().err


def test_missing_input_file(use_converter, tmp_path, capsys):
    use_converter(DocumentConverter(StubRenderer(), FakePdfGenerator()))

    assert cli.main([str(tmp_path / "absent.md"), str(tmp_path / "out.pdf")]) == 1

    assert "Error" in capsys.readouterr().err
    assert not (tmp_path / "out.pdf").exists()


def test_empty_input_file(use_converter, tmp_path, capsys):
    use_converter(DocumentConverter(StubRenderer(), FakePdfGenerator()))
    empty = tmp_path / "empty.md"
    empty.write_text("", encoding="utf-8")

    assert cli.main([str(empty), str(tmp_path / "out.pdf")]) == 1

    assert "Markdown cannot be empty." in capsys.readouterr().err


def test_pdf_failure_leaves_no_file(use_converter, plan, tmp_path, capsys):
    use_converter(DocumentConverter(StubRenderer(), FakePdfGenerator(error="Failed to generate PDF: no browser")))
    output = tmp_path / "out.pdf"

    assert cli.main([str(plan), str(output)]) == 1

    assert "no browser" in capsys.readouterr().err
    assert not output.exists()
    assert sorted(p.name for p in tmp_path.iterdir()) == ["my.plan.md"]


def test_timeout(use_converter, plan, tmp_path, capsys):
    use_converter(DocumentConverter(StubRenderer(delay=5), FakePdfGenerator()))

    assert cli.main([str(plan), str(tmp_path / "out.pdf"), "--timeout", "0.2"]) == 1

    assert "timed out" in capsys.readouterr().err


def test_check_reports_dependencies(monkeypatch):
    monkeypatch.setattr(cli, "check_dependencies", lambda config, check_pdf=True: False)
    assert cli.main(["--check"]) == 1
    monkeypatch.setattr(cli, "check_dependencies", lambda config, check_pdf=True: True)
    assert cli.main(["--check"]) == 0


def test_module_entry_point_runs_cli(monkeypatch):
    import runpy

    monkeypatch.setattr(cli, "main", lambda: 0)
    with pytest.raises(SystemExit) as exc_info:
        runpy.run_module("mermaid_pdf.__main__", run_name="__main__")
    assert exc_info.value.code == 0
