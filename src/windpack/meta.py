# src/windpack/meta.py
"""Program identity, shared by the CLI, logger, and config locator."""

from dataclasses import dataclass


PROGRAM_PACKAGE = "windpack"
PROGRAM_SCRIPT = "windpack"
PROGRAM_DISPLAY = "Windpack"
PROGRAM_ENV = "WINDPACK"
PROGRAM_CONFIG = "windpack.config"
DESCRIPTION = "Executable build configs with ordered plugin overrides."


@dataclass(frozen=True)
class Metadata:
    version: str
    commit: str

    def __str__(self) -> str:
        return f"{self.version} ({self.commit})"
