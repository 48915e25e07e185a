"""Errors raised while reading leadmerge settings."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """An environment variable holds a value leadmerge cannot use."""

    def __init__(self, variable: str, problem: str) -> None:
        super().__init__(f"{variable}: {problem}")
        self.variable = variable
        self.problem = problem
