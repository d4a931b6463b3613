from __future__ import annotations

from pathlib import Path
from typing import Callable

from click.testing import CliRunner

from pdf2htmlx import __version__
from pdf2htmlx.cli import cli

PdfFactory = Callable[..., Path]


def test_convert_command(sample_pdf: Path, tmp_path: Path) -> None:
    output = tmp_path / "converted.html"

    result = CliRunner().invoke(cli, ["convert", str(sample_pdf), "-o", str(output)])

    assert result.exit_code == 0, result.output
    assert "Successfully converted sample.pdf" in result.output
    assert "Conversion Summary" in result.output
    assert output.exists()


def test_convert_command_writes_image_files(pdf_factory: PdfFactory, tmp_path: Path) -> None:
    path = pdf_factory(b"q 20 0 0 20 10 10 cm /Im1 Do Q", with_image=True)
    image_dir = tmp_path / "assets"

    result = CliRunner().invoke(
        cli,
        ["convert", str(path), "-o", str(tmp_path / "out.html"), "--image-mode", "file", "--image-dir", str(image_dir)],
    )

    assert result.exit_code == 0, result.output
    assert len(list(image_dir.glob("*.png"))) == 1


def test_convert_command_reports_encrypted_input(pdf_factory: PdfFactory) -> None:
    path = pdf_factory(b"", password="secret")

    result = CliRunner().invoke(cli, ["convert", str(path)])

    assert result.exit_code == 1
    assert "Error" in result.output
    assert "encrypted" in result.output


def test_info_command(sample_pdf: Path) -> None:
    result = CliRunner().invoke(cli, ["info", str(sample_pdf)])

    assert result.exit_code == 0, result.output
    assert "Test Document" in result.output
    assert "Crop box" in result.output
    assert "1 unsupported font(s)" in result.output


def test_version_option() -> None:
    result = CliRunner().invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output
