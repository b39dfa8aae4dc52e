from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    OK = 0
    CONFIG_ERROR = 2
    INPUT_ERROR = 3
    RUNTIME_ERROR = 5


class PortfolioError(Exception):
    """Base error for the portfolio pipeline."""


class ConfigError(PortfolioError):
    """Raised for configuration or argument issues."""


class InputError(PortfolioError):
    """Raised when a portfolio document cannot be read or parsed."""


class ExportError(PortfolioError):
    """Raised when writing report artifacts fails."""


class RenderError(PortfolioError):
    """Raised when a graph rendering tier cannot produce output."""


def as_exit_code(exc: BaseException) -> int:
    if isinstance(exc, (ConfigError, ValueError)):
        return int(ExitCode.CONFIG_ERROR)
    if isinstance(exc, InputError):
        return int(ExitCode.INPUT_ERROR)
    if isinstance(exc, (ExportError, RenderError, PortfolioError)):
        return int(ExitCode.RUNTIME_ERROR)
    return 1
