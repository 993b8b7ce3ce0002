"""
Frontend deployment configuration.

Configuration is loaded from the [frontend] table of sitefront.toml. Keys
may be written in snake_case or in the camelCase spelling used by
serverless-style configs (``buildCommand``, ``ssrForwardHost``...).
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError
from .frameworks import DETECT, FrameworkProfile, FrameworkResolver

DEFAULT_CONFIG_FILE = "sitefront.toml"

PriceClass = Literal["PriceClass_100", "PriceClass_200", "PriceClass_All"]
HttpVersion = Literal["http1.1", "http2", "http2and3", "http3"]
SslVersion = Literal[
    "SSLv3",
    "TLSv1",
    "TLSv1_2016",
    "TLSv1.1_2016",
    "TLSv1.2_2018",
    "TLSv1.2_2019",
    "TLSv1.2_2021",
    "TLSv1.2_2025",
    "TLSv1.3_2025",
]


class CloudfrontConfig(BaseModel):
    """CloudFront distribution tuning."""

    description: str | None = None
    price_class: PriceClass = "PriceClass_100"
    ipv6: bool = True
    enabled: bool = True
    http: HttpVersion = "http2and3"
    ssl_version: SslVersion = "TLSv1.2_2021"


class FrontendConfig(BaseModel):
    """Complete frontend configuration."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    service: str = "site"
    stage: str = "dev"
    region: str | None = None

    build_command: str | list[str] | None = Field(default=None, alias="buildCommand")
    build_environment: dict[str, str] = Field(default_factory=dict, alias="buildEnvironment")
    build_timeout: float | None = Field(default=None, gt=0, alias="buildTimeout")
    framework: str | None = None
    ssr_environment: dict[str, str] = Field(default_factory=dict, alias="ssrEnvironment")
    ssr_forward_host: bool = Field(default=True, alias="ssrForwardHost")
    aliases: list[str] = Field(default_factory=list)
    certificate: str | None = None
    cloudfront: CloudfrontConfig = Field(default_factory=CloudfrontConfig)

    @field_validator("framework", mode="before")
    @classmethod
    def _no_framework(cls, value: Any) -> Any:
        # TOML has no null: `false` or "none" force a deployment without compute
        if value is False or (isinstance(value, str) and value.strip().lower() == "none"):
            return None
        return value

    @field_validator("aliases", mode="before")
    @classmethod
    def _split_aliases(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [alias.strip() for alias in value.split(",") if alias.strip()]
        return value

    @property
    def stack_name(self) -> str:
        return f"{self.service}-{self.stage}"

    def framework_override(self) -> Any:
        """The explicit framework override, or DETECT when none was configured."""
        if "framework" in self.model_fields_set:
            return self.framework
        return DETECT

    def build_argv(self) -> list[str] | None:
        if self.build_command is None:
            return None
        if isinstance(self.build_command, str):
            return self.build_command.split()
        return list(self.build_command)


@dataclass(frozen=True)
class ResolvedConfig:
    """
    Configuration plus everything derived from the project, computed once.

    Every pipeline phase receives this value; nothing writes back into it.
    """

    config: FrontendConfig
    project_dir: Path
    profile: FrameworkProfile | None
    package_manager: str

    @property
    def has_server_compute(self) -> bool:
        return self.profile is not None and self.profile.has_server_compute

    def path(self, relative: str) -> Path:
        return self.project_dir / relative


def resolve_config(config: FrontendConfig, project_dir: Path) -> ResolvedConfig:
    """Run framework resolution once and freeze the result."""
    resolver = FrameworkResolver(project_dir, config.framework_override())
    profile = resolver.profile()
    return ResolvedConfig(
        config=config,
        project_dir=project_dir,
        profile=profile,
        package_manager=resolver.signals.package_manager,
    )


def load_frontend_config(toml_path: Path) -> FrontendConfig:
    """
    Load frontend configuration from a TOML file.

    Args:
        toml_path: Path to sitefront.toml

    Returns:
        FrontendConfig with values from the [frontend] table or defaults

    Raises:
        ConfigurationError: if the file cannot be parsed or holds invalid values
    """
    if not toml_path.exists():
        return FrontendConfig()

    try:
        with open(toml_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Could not parse {toml_path}: {e}") from e

    section = data.get("frontend", {})
    if not section:
        return FrontendConfig()

    return parse_config(section)


def parse_config(data: dict[str, Any]) -> FrontendConfig:
    """Validate a raw mapping into a FrontendConfig."""
    try:
        return FrontendConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid frontend configuration:\n{e}") from e
