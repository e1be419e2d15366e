"""Rich console output for the build configuration step.

Everything printed here is for humans reading the build log. Secrets are
masked before they reach the console; the file on disk is produced by
buildconfig.publisher from the same document without masking.
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import SecretStr
from rich.console import Console
from rich.markup import escape

from buildconfig.models import BuildConfiguration, StepInputs

# Raw inputs that are printed masked
SECRET_INPUTS: frozenset[str] = frozenset(
    name for name, field in StepInputs.model_fields.items()
    if field.annotation is SecretStr
)

# Input name → label, grouped the way the step log shows them
INPUT_GROUPS: list[tuple[str, list[tuple[str, str]]]] = [
    ("Configs:", [
        ("configuration", "Configuration"),
    ]),
    ("ios signing configs:", [
        ("development_team", "DevelopmentTeam"),
        ("code_sign_identity", "CodeSignIdentity"),
        ("provisioning_profile", "ProvisioningProfile"),
        ("package_type", "PackageType"),
    ]),
    ("android signing configs:", [
        ("keystore_url", "KeystoreURL"),
        ("keystore_password", "KeystorePassword"),
        ("keystore_alias", "KeystoreAlias"),
        ("private_key_password", "PrivateKeyPassword"),
    ]),
]


def redact(document: BuildConfiguration) -> dict[str, Any]:
    """Project the document onto its display-safe form.

    Android store/key passwords become "*****" when set. The iOS section
    carries no secrets and passes through as is.
    """
    view: dict[str, Any] = {}
    if document.android:
        view["android"] = {
            name: item.to_payload(reveal=False)
            for name, item in document.android.items()
        }
    if document.ios:
        view["ios"] = {
            name: item.to_payload(reveal=True)
            for name, item in document.ios.items()
        }
    return view


def print_inputs(raw: Mapping[str, str], console: Console | None = None) -> None:
    """Print the raw step inputs, masking secret values.

    Runs before validation so a rejected run still logs what it was given.

    Args:
        raw: Input name → value, as returned by StepInputs.read_env.
        console: Optional Rich Console instance.
    """
    console = console or Console()

    for title, fields in INPUT_GROUPS:
        console.print(f"[cyan]{title}[/cyan]")
        for name, label in fields:
            value = raw.get(name, "")
            if name in SECRET_INPUTS:
                value = str(SecretStr(value))
            console.print(f"- {label}: {escape(value)}")


def print_document(document: BuildConfiguration, console: Console | None = None) -> None:
    """Print the redacted build.json content."""
    console = console or Console()
    console.print("content:")
    console.print_json(data=redact(document), indent=2, highlight=False)
