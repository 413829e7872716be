"""Exit codes for the conditional CLI."""

from __future__ import annotations

from enum import IntEnum

__all__ = ["ExitCode"]


class ExitCode(IntEnum):
    """Standard exit codes.

    - 0 for success (or a condition that evaluated to true)
    - 1 for failure
    - 2 for a condition that evaluated to false, when requested with
      ``--exit-code``
    """

    SUCCESS = 0
    FAILURE = 1
    CONDITION_FALSE = 2
