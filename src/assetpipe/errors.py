"""Error taxonomy for asset builds.

Every error the runner reports derives from `AssetPipeError`; the CLI maps
any of them to a non-zero exit status.
"""

from __future__ import annotations


class AssetPipeError(Exception):
    """Base class for build errors."""


class ConfigError(AssetPipeError):
    """Invalid or inconsistent build configuration."""


class UnknownTask(AssetPipeError):
    def __init__(self, name: str, known: list[str] | None = None):
        self.name = name
        self.known = sorted(known or [])
        msg = f"No such task: {name}"
        if self.known:
            msg += f" (known: {', '.join(self.known)})"
        super().__init__(msg)


class SourceSyntaxError(AssetPipeError):
    """A style, script or SVG source could not be parsed."""

    def __init__(self, path, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"{path}: {detail}")


class MissingCredential(AssetPipeError):
    def __init__(self, variable: str, stage: str):
        self.variable = variable
        self.stage = stage
        super().__init__(f"{variable} is not set; required by stage '{stage}'")


class StageFailure(AssetPipeError):
    """Any other error raised while a stage was running."""

    def __init__(self, stage: str, cause: BaseException | str):
        self.stage = stage
        self.cause = cause
        super().__init__(f"Stage '{stage}' failed: {cause}")
