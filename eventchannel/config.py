"""Configuration for eventchannel.

Settings are read from environment variables prefixed with ``EVENTCHANNEL_``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

ENV_PREFIX = "EVENTCHANNEL_"

_TRUTHY = ("1", "true", "True")


class ErrorPolicy(str, Enum):
    """
    What the bus does when a handler raises during publish.

    - RAISE: propagate to the publisher, abort remaining handlers
    - CONTINUE: log, record a dead letter, keep dispatching
    """

    RAISE = "raise"
    CONTINUE = "continue"


@dataclass
class BusConfig:
    """
    Event bus configuration.

    Args:
        error_policy: Handler failure policy
        max_dead_letters: Maximum failures kept under the continue policy
        log_level: Log level for configure_logging
        json_logs: Emit JSON logs instead of console output
    """

    error_policy: ErrorPolicy = ErrorPolicy.RAISE
    max_dead_letters: int = 1000
    log_level: str = "INFO"
    json_logs: bool = False

    def __post_init__(self):
        try:
            self.error_policy = ErrorPolicy(self.error_policy)
        except ValueError:
            choices = ", ".join(p.value for p in ErrorPolicy)
            raise ValueError(
                f"error_policy must be one of: {choices} (got {self.error_policy!r})"
            ) from None
        if self.max_dead_letters < 0:
            raise ValueError("max_dead_letters must be >= 0")
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log_level: {self.log_level}")
        self.log_level = self.log_level.upper()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> BusConfig:
        """Load configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            BusConfig instance
        """
        env = os.environ if environ is None else environ

        raw_max = env.get(f"{ENV_PREFIX}MAX_DEAD_LETTERS", "1000")
        try:
            max_dead_letters = int(raw_max)
        except ValueError:
            raise ValueError(
                f"{ENV_PREFIX}MAX_DEAD_LETTERS must be an integer (got {raw_max!r})"
            ) from None

        return cls(
            error_policy=env.get(f"{ENV_PREFIX}ERROR_POLICY", ErrorPolicy.RAISE.value),
            max_dead_letters=max_dead_letters,
            log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", "INFO"),
            json_logs=env.get(f"{ENV_PREFIX}LOG_JSON", "0") in _TRUTHY,
        )
