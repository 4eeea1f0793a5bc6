# src/windpack/errors.py
"""Exceptions raised while resolving a configuration.

Each one also derives from the builtin that best describes it, so callers
(and the CLI) can catch either the windpack type or the broad category.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from .utils.utils_schema import ValidationSummary


class WindpackError(Exception):
    """Base class for all windpack failures."""


class ResolutionError(WindpackError, ImportError):
    """An import in the config graph could not be resolved."""

    def __init__(
        self,
        specifier: str,
        importer: Path,
        *,
        hint: str | None = None,
    ) -> None:
        self.specifier = specifier
        self.importer = importer
        msg = f"Could not resolve import `{specifier}` from {importer}"
        if hint:
            msg += f"\n   {hint}"
        super().__init__(msg)


class UnsupportedFormatError(WindpackError, ValueError):
    """The config file would run as a classic script, which is not supported."""

    def __init__(self, path: Path, *, manifest: Path | None = None) -> None:
        self.path = path
        self.manifest = manifest
        manifest_hint = manifest or path.parent / "pyproject.toml"
        msg = (
            f"{path.name} would be evaluated as a classic script, "
            "which windpack cannot load.\n"
            f"   Rename it to {path.stem}.pym, or declare the project a module "
            f'with `[tool.windpack] type = "module"` in {manifest_hint}.'
        )
        super().__init__(msg)


class ConfigEvaluationError(WindpackError, RuntimeError):
    """User config code failed while being compiled or executed."""

    def __init__(
        self,
        path: Path,
        reason: str,
        *,
        location: str | None = None,
    ) -> None:
        self.path = path
        self.location = location
        where = f" (at {location})" if location else ""
        super().__init__(f"Error while executing config {path.name}{where}: {reason}")


class ConfigValidationError(WindpackError, ValueError):
    """The merged config failed schema validation.

    The summary has already been logged, hence `silent`.
    """

    silent = True

    def __init__(self, path: Path | None, summary: ValidationSummary) -> None:
        self.path = path
        self.summary = summary
        name = path.name if path else "configuration"
        super().__init__(f"Configuration file {name} contains validation errors.")

    @property
    def data(self) -> ValidationSummary:
        return self.summary


class MergeError(WindpackError, TypeError):
    """A value that cannot take part in a config merge was supplied.

    `source` names the plugin whose contribution was rejected, if any.
    """

    def __init__(self, msg: str, *, source: str | None = None) -> None:
        self.source = source
        super().__init__(msg)
