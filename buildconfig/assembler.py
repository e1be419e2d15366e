"""Build configuration document assembly.

Maps validated step inputs onto the build.json structure consumed by
`cordova build --buildConfig`. Two independent decisions:
- android: produced when a keystore URL is given
- ios: produced unless the package type is "none"

Both sections are keyed by the selected build configuration (release or
debug). Values are copied verbatim; empty ones are dropped at
serialization time.
"""

from __future__ import annotations

from pathlib import Path

from buildconfig.models import AndroidBuildConfig, BuildConfiguration, IOSBuildConfig, StepInputs


def assemble(inputs: StepInputs, keystore_path: Path | None = None) -> BuildConfiguration:
    """Build the configuration document for a single run.

    Args:
        inputs: Validated step inputs.
        keystore_path: Resolved keystore location. Required when
                       inputs.has_android is true, ignored otherwise.

    Returns:
        The assembled document. May be empty when neither platform is
        configured.

    Raises:
        ValueError: If an android section is needed but no keystore path
                    was provided.
    """
    android: dict[str, AndroidBuildConfig] | None = None
    ios: dict[str, IOSBuildConfig] | None = None

    if needs_keystore(inputs):
        if keystore_path is None:
            raise ValueError("keystore_path is required when keystore_url is set")
        android = {inputs.configuration: android_section(inputs, keystore_path)}

    if inputs.has_ios:
        ios = {inputs.configuration: ios_section(inputs)}

    return BuildConfiguration(android=android, ios=ios)


def needs_keystore(inputs: StepInputs) -> bool:
    """Whether the keystore has to be resolved before assembling."""
    return inputs.has_android


def android_section(inputs: StepInputs, keystore_path: Path) -> AndroidBuildConfig:
    return AndroidBuildConfig(
        keystore=str(keystore_path),
        store_password=inputs.keystore_password,
        alias=inputs.keystore_alias,
        password=inputs.private_key_password,
    )


def ios_section(inputs: StepInputs) -> IOSBuildConfig:
    return IOSBuildConfig(
        code_sign_identity=inputs.code_sign_identity,
        provisioning_profile=inputs.provisioning_profile,
        development_team=inputs.development_team,
        package_type=inputs.package_type,
    )
