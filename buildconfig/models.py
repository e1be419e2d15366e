"""Pydantic models for the build configuration step.

Defines the data contracts of a single run:
- StepInputs: the validated, immutable step inputs read from the environment
- AndroidBuildConfig / IOSBuildConfig: per-platform signing records
- BuildConfiguration: the build.json document handed to the Cordova CLI

Password-like values are held as SecretStr. Printing them yields a mask;
the raw value has to be requested explicitly with get_secret_value().
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator
from pydantic.alias_generators import to_camel, to_pascal

from buildconfig.errors import InvalidInput

CONFIGURATION_OPTIONS: tuple[str, ...] = ("release", "debug")
PACKAGE_TYPE_OPTIONS: tuple[str, ...] = (
    "none",
    "development",
    "enterprise",
    "ad-hoc",
    "app-store",
)

# Display token for non-empty secrets
MASK = "*****"


def _empty_secret() -> SecretStr:
    return SecretStr("")


class StepInputs(BaseModel):
    """Step inputs, constructed once at startup and never mutated.

    Field names match the environment variable names the pipeline exports.
    Only `configuration` and `package_type` are constrained; everything
    else is free text and may be empty.
    """

    model_config = ConfigDict(frozen=True)

    configuration: str

    development_team: str = ""
    code_sign_identity: str = ""
    provisioning_profile: str = ""
    package_type: str

    keystore_url: str = ""
    keystore_password: SecretStr = Field(default_factory=_empty_secret)
    keystore_alias: str = ""
    private_key_password: SecretStr = Field(default_factory=_empty_secret)

    @field_validator("configuration")
    @classmethod
    def _check_configuration(cls, value: str) -> str:
        return _check_option(value, CONFIGURATION_OPTIONS)

    @field_validator("package_type")
    @classmethod
    def _check_package_type(cls, value: str) -> str:
        return _check_option(value, PACKAGE_TYPE_OPTIONS)

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> StepInputs:
        """Read and validate step inputs from an environment mapping.

        Args:
            environ: Variable mapping, usually os.environ. Missing names
                     are treated as empty strings.

        Returns:
            Validated StepInputs instance.

        Raises:
            InvalidInput: If configuration or package_type is not one of
                          its allowed options.
        """
        raw = cls.read_env(environ)
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise InvalidInput(_describe(exc)) from exc

    @classmethod
    def from_yaml(cls, path: Path, environ: Mapping[str, str]) -> StepInputs:
        """Read inputs from a YAML file, letting the environment override it.

        The file holds a flat mapping using the same names as the
        environment variables. Useful for running the step outside CI.

        Raises:
            InvalidInput: If the file can't be read or isn't a mapping, or
                          if the merged values fail validation.
        """
        return cls.from_env(cls.read_yaml(path, environ))

    @classmethod
    def read_env(cls, environ: Mapping[str, str]) -> dict[str, str]:
        """Collect the raw input strings, unvalidated. Missing names are empty."""
        return {name: environ.get(name, "") for name in cls.model_fields}

    @classmethod
    def read_yaml(cls, path: Path, environ: Mapping[str, str]) -> dict[str, str]:
        """Collect raw inputs from a YAML file overlaid with non-empty env values."""
        try:
            content = path.read_text(encoding="utf-8")
            raw = yaml.safe_load(content)
        except (OSError, yaml.YAMLError) as exc:
            raise InvalidInput(f"Failed to read inputs file ({path}): {exc}") from exc

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise InvalidInput(f"Inputs file ({path}) must contain a mapping")

        merged = {
            name: "" if raw.get(name) is None else str(raw[name])
            for name in cls.model_fields
        }
        for name in cls.model_fields:
            value = environ.get(name, "")
            if value:
                merged[name] = value

        return merged

    @property
    def has_android(self) -> bool:
        """True when a keystore URL is set and an android section is due."""
        return self.keystore_url != ""

    @property
    def has_ios(self) -> bool:
        """True unless the package type disables the ios section."""
        return self.package_type != "none"


def _check_option(value: str, options: tuple[str, ...]) -> str:
    if value not in options:
        raise ValueError(
            f"invalid value {value!r}, available: [{' '.join(options)}]"
        )
    return value


def _describe(exc: ValidationError) -> str:
    """Flatten a pydantic ValidationError into one line per field."""
    parts: list[str] = []
    for error in exc.errors():
        field = to_pascal(str(error["loc"][0])) if error["loc"] else "input"
        message = error["msg"].removeprefix("Value error, ")
        parts.append(f"{field}: {message}")
    return "; ".join(parts)


class _Section(BaseModel):
    """A per-platform signing record serialized with camelCase keys."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_payload(self, reveal: bool = False) -> dict[str, str]:
        """Render the record as a JSON-ready dict.

        Keys follow field declaration order; empty values are omitted.
        Secret values are unwrapped only when `reveal` is set, otherwise
        they're replaced by MASK.
        """
        payload: dict[str, str] = {}
        for name, field in type(self).model_fields.items():
            value: Any = getattr(self, name)
            if isinstance(value, SecretStr):
                secret = value.get_secret_value()
                value = secret if reveal or not secret else MASK
            if value:
                payload[field.alias or name] = value
        return payload


class AndroidBuildConfig(_Section):
    """Keystore signing parameters for `cordova build android`."""

    keystore: str = ""
    store_password: SecretStr = Field(default_factory=_empty_secret)
    alias: str = ""
    password: SecretStr = Field(default_factory=_empty_secret)


class IOSBuildConfig(_Section):
    """Code signing parameters for `cordova build ios`."""

    code_sign_identity: str = ""
    provisioning_profile: str = ""
    development_team: str = ""
    package_type: str = ""


class BuildConfiguration(BaseModel):
    """The build.json document.

    Each section maps a build configuration name (release/debug) to its
    signing record. A section is None when the step has nothing to put in it.
    """

    model_config = ConfigDict(frozen=True)

    android: dict[str, AndroidBuildConfig] | None = None
    ios: dict[str, IOSBuildConfig] | None = None

    def is_empty(self) -> bool:
        return not self.android and not self.ios

    def to_payload(self, reveal: bool = False) -> dict[str, Any]:
        """Render the whole document, android before ios."""
        payload: dict[str, Any] = {}
        if self.android:
            payload["android"] = {
                name: item.to_payload(reveal) for name, item in self.android.items()
            }
        if self.ios:
            payload["ios"] = {
                name: item.to_payload(reveal) for name, item in self.ios.items()
            }
        return payload
