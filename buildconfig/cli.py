"""Cordova build configuration step: Click entry point.

Generates the build.json consumed by `cordova build --buildConfig`:
- Reads signing inputs from the environment (optionally seeded by a YAML file)
- Resolves the Android keystore (local file:// path or remote download)
- Prints the document with passwords masked
- Writes the unmasked build.json and exports its path with envman

Usage:
    configuration=release package_type=development ... \\
        python -m buildconfig.cli --output-dir /tmp/build-config
"""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Callable

import click
from rich.console import Console
from rich.markup import escape

from buildconfig.assembler import assemble, needs_keystore
from buildconfig.errors import BuildConfigError, PersistenceError
from buildconfig.keystore import FILE_SCHEME, resolve_keystore
from buildconfig.models import StepInputs
from buildconfig.publisher import OUTPUT_KEY, export_output, serialize, write_document
from buildconfig.renderer import print_document, print_inputs

console = Console()

TMP_DIR_PREFIX = "__bitrise-cordova-build-config__"


def run_step(
    inputs: StepInputs,
    scratch_dir: Path,
    console: Console | None = None,
    exporter: Callable[[str, str], None] | None = None,
) -> Path | None:
    """Generate, write and publish build.json for validated inputs.

    Args:
        inputs: Validated step inputs.
        scratch_dir: Directory for the downloaded keystore and build.json.
        console: Optional Rich Console instance.
        exporter: Publishes the output path; envman by default.

    Returns:
        Path to build.json, or None when there was nothing to generate.

    Raises:
        BuildConfigError: On the first failing stage. Nothing is retried
                          and files already written are left in place.
    """
    console = console or Console()
    exporter = exporter or export_output

    keystore_path: Path | None = None
    if needs_keystore(inputs):
        console.print()
        console.print("[cyan]Adding android build config[/cyan]")
        if not inputs.keystore_url.startswith(FILE_SCHEME):
            console.print("download keystore")
        keystore_path = resolve_keystore(inputs.keystore_url, scratch_dir)

    if inputs.has_ios:
        console.print()
        console.print("[cyan]Adding ios build config[/cyan]")

    document = assemble(inputs, keystore_path)

    if document.is_empty():
        console.print(
            "[yellow]No ios nor android build config parameters specified, "
            "nothing to generate...[/yellow]"
        )
        return None

    console.print()
    console.print("[cyan]Generating config file[/cyan]")
    print_document(document, console=console)

    data = serialize(document)
    config_path = write_document(data, scratch_dir)

    exporter(OUTPUT_KEY, str(config_path))
    console.print(
        f"[green]The build.json path is now available in the Environment "
        f"Variable: {OUTPUT_KEY} (value: {escape(str(config_path))})[/green]"
    )

    return config_path


def _make_scratch_dir(output_dir: Path | None) -> Path:
    """Create the scratch directory shared by the download and publish steps."""
    try:
        if output_dir is not None:
            output_dir.mkdir(parents=True, exist_ok=True)
            return output_dir.absolute()
        return Path(tempfile.mkdtemp(prefix=TMP_DIR_PREFIX))
    except OSError as exc:
        raise PersistenceError(f"Failed to create tmp dir, error: {exc}") from exc


@click.command()
@click.version_option(version="1.0.0", prog_name="cordova-build-config")
@click.option("--inputs", "inputs_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None, help="YAML file with default input values (environment wins).")
@click.option("--output-dir", "output_dir", type=click.Path(file_okay=False, path_type=Path), default=None, help="Scratch directory for keystore.jks and build.json.")
def main(inputs_path: Path | None, output_dir: Path | None) -> None:
    """Generate a Cordova build.json from Android and iOS signing inputs."""
    try:
        if inputs_path is not None:
            raw = StepInputs.read_yaml(inputs_path, os.environ)
        else:
            raw = StepInputs.read_env(os.environ)

        console.print()
        print_inputs(raw, console=console)

        inputs = StepInputs.from_env(raw)
    except BuildConfigError as exc:
        console.print(f"[red]Issue with input: {escape(str(exc))}[/red]")
        sys.exit(1)

    try:
        scratch_dir = _make_scratch_dir(output_dir)
        run_step(inputs, scratch_dir, console=console)
    except BuildConfigError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
