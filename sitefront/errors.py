"""Error taxonomy for the sitefront pipeline."""

from __future__ import annotations


class SitefrontError(Exception):
    """Base class for every error raised by sitefront."""


class ConfigurationError(SitefrontError):
    """Unresolvable framework, missing build command or invalid settings."""


class BuildFailure(SitefrontError):
    def __init__(self, message: str, exit_code: int | None = None, stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr

    def __str__(self) -> str:
        parts = [self.args[0]]
        if self.stdout:
            parts.append(f"stdout:\n{self.stdout}")
        if self.stderr:
            parts.append(f"stderr:\n{self.stderr}")
        return "\n".join(parts)


class PreconditionMissing(SitefrontError):
    """A stack output required by the current phase does not exist yet."""


class RemoteAccessDenied(SitefrontError):
    pass


class RemoteGenericFailure(SitefrontError):
    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code


class PhaseOrderError(SitefrontError):
    """A pipeline phase was started before its predecessor completed."""
