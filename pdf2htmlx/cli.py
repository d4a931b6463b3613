"""
Command-line interface for pdf2htmlx.
"""

import logging
import os
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeRemainingColumn
from rich.table import Table

from pdf2htmlx import __version__
from pdf2htmlx.backends import PypdfDocumentEngine
from pdf2htmlx.config import ImageEmission, LayoutOptions
from pdf2htmlx.converter import convert_pdf_to_html
from pdf2htmlx.exceptions import Pdf2HtmlError
from pdf2htmlx.fonts import FontTable
from pdf2htmlx.utils import configure_logging, format_file_size, format_number

console = Console()


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    pdf2htmlx - Rebuild PDF pages as absolutely positioned HTML.
    """
    pass


@cli.command(name="convert")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--output', '-o',
    help='Output HTML file (defaults to INPUT_PDF with an .html suffix)',
    type=click.Path(dir_okay=False)
)
@click.option(
    '--image-mode',
    type=click.Choice([mode.value for mode in ImageEmission]),
    default=ImageEmission.INLINE.value,
    show_default=True,
    help='Embed images as data URIs or write them to files'
)
@click.option(
    '--image-dir',
    type=click.Path(file_okay=False),
    help='Directory for image files (defaults to ./image next to the output)'
)
@click.option('--no-indent-correction', is_flag=True, help='Do not emit first-line indent spacers')
@click.option('--quote-spacing', is_flag=True, help='Pad curly quotes with spaces')
@click.option('--line-mode', is_flag=True, help='Emit every visual line as its own box')
@click.option('--password', help='Password for encrypted PDFs', type=str)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def convert(input_pdf, output, image_mode, image_dir, no_indent_correction, quote_spacing, line_mode, password,
            verbose):
    """
    Convert a PDF into a single HTML document.

    Examples:

        pdf2htmlx convert input.pdf

        pdf2htmlx convert input.pdf -o out/page.html --image-mode file
    """
    configure_logging(logging.DEBUG if verbose else logging.WARNING)
    try:
        options = LayoutOptions(
            image_emission=ImageEmission(image_mode),
            image_dir=Path(image_dir) if image_dir else None,
            first_line_indent_correction=not no_indent_correction,
            special_quote_spacing=quote_spacing,
            paragraph_mode=not line_mode,
        )

        console.print("\n[bold cyan]Opening PDF...[/bold cyan]")
        page_count = PypdfDocumentEngine.load(input_pdf, password=password).page_count

        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeRemainingColumn(),
            console=console
        ) as progress:
            task = progress.add_task("Converting pages", total=page_count)

            def update_progress(current, total):
                progress.update(task, completed=current)

            result = convert_pdf_to_html(
                input_pdf,
                output,
                options,
                password=password,
                progress_callback=update_progress,
            )

        stats = result.stats
        table = Table(title="Conversion Summary", show_header=False)
        table.add_column("Property", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Output", str(result.output_path))
        table.add_row("Size", format_file_size(os.path.getsize(result.output_path)))
        table.add_row("Pages", str(result.page_count))
        table.add_row("Paragraphs", str(stats.paragraphs))
        table.add_row("Lines", str(stats.lines))
        table.add_row("Images", str(stats.images))
        if stats.skipped_images:
            table.add_row("Skipped images", str(stats.skipped_images))
        if stats.unsupported_fonts:
            table.add_row("Unsupported fonts", str(stats.unsupported_fonts))

        console.print(f"\n[bold green]✓ Successfully converted {os.path.basename(input_pdf)}[/bold green]")
        console.print(table)
        console.print()

    except Pdf2HtmlError as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e.message}")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)


@cli.command(name="info")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@click.option('--password', help='Password for encrypted PDFs', type=str)
def show_info(input_pdf, password):
    """
    Display pages, crop boxes and fonts of a PDF.

    Example:

        pdf2htmlx info input.pdf
    """
    try:
        document = PypdfDocumentEngine.load(input_pdf, password=password)

        pages = Table(title=f"Pages: {os.path.basename(input_pdf)}")
        pages.add_column("Page", style="cyan", no_wrap=True)
        pages.add_column("Crop box", style="green")
        pages.add_column("Rotation", style="green")

        font_table = FontTable()
        for number in range(1, document.page_count + 1):
            summary = document.page_summary(number)
            box = summary.crop_box
            pages.add_row(
                str(number),
                f"{format_number(box.left)}, {format_number(box.bottom)}, "
                f"{format_number(box.width)} x {format_number(box.height)}",
                f"{summary.rotation}°",
            )
            font_table.update_from_resources(document.page_resources(number))

        fonts = Table(title="Fonts")
        fonts.add_column("Family", style="cyan")
        fonts.add_column("Base font", style="green")
        fonts.add_column("Kind", style="green")
        for font, entry in font_table:
            fonts.add_row(entry.family, font.base_font or font.name, entry.kind.value)

        console.print()
        if document.title:
            console.print(f"[bold]Title:[/bold] {document.title}")
        console.print(pages)
        console.print(fonts)
        if font_table.unsupported_count:
            console.print(f"[yellow]{font_table.unsupported_count} unsupported font(s)[/yellow]")
        console.print()

    except Exception as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)


if __name__ == '__main__':
    cli()
