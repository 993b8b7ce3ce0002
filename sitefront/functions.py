"""Server function registration for frameworks with server-side rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .config import ResolvedConfig


@dataclass(frozen=True)
class ComputeUnit:
    """The server-rendering function registered for SSR frameworks."""

    name: str
    handler: str
    artifact: Path
    timeout_seconds: int = 10
    memory_size: int = 1024
    environment: dict[str, str] = field(default_factory=dict)


def compute_unit_for(resolved: ResolvedConfig, artifact: Path) -> ComputeUnit | None:
    """The function to register, or None when the framework has no server."""
    profile = resolved.profile
    if profile is None or not profile.has_server_compute or profile.compute_entry_point is None:
        return None
    return ComputeUnit(
        name=f"{resolved.config.stack_name}-server",
        handler=profile.compute_entry_point,
        artifact=artifact,
        environment=dict(resolved.config.ssr_environment),
    )
