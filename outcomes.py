"""
Step outcomes for the video player.

Every page interaction the player performs reports one of three outcomes:
  Ok        - the step worked, `value` holds the result
  Degraded  - the step failed but only advisory data was lost; `value` holds the
              fallback and `warning` says what went wrong
  Fatal     - the step failed and playback of this video cannot continue
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class Ok:
    value: object = None

    is_fatal = False


@dataclass(frozen=True)
class Degraded:
    value: object
    warning: str

    is_fatal = False


@dataclass(frozen=True)
class Fatal:
    error: Exception

    is_fatal = True
    value = None
