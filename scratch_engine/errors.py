"""Exception hierarchy for generation failures.

Downgrading a win to a losing panel is policy, not an error, and never
raises. Validator findings are returned as data and never raise either.
"""

from typing import Optional


class ScratchEngineError(Exception):
    """Base class for all engine errors."""


class InsufficientVarietyError(ScratchEngineError):
    """The item pool is too small for the slots and match rule requested.

    Fatal for the current ticket: the project is misconfigured, retrying
    cannot help.
    """

    def __init__(self, reason: str, game_number: Optional[int] = None,
                 module_name: Optional[str] = None):
        self.reason = reason
        self.game_number = game_number
        self.module_name = module_name
        super().__init__(reason)

    def attach_module(self, module) -> None:
        """Record which module hit the limit (filled in by the dispatcher)."""
        self.game_number = module.game_number
        self.module_name = module.label
        self.args = (str(self),)

    def __str__(self) -> str:
        if self.module_name:
            return f"{self.module_name}: {self.reason}"
        return self.reason


class ConfigurationError(ScratchEngineError):
    """Pre-flight checks failed; carries every problem found."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("; ".join(problems))


class TicketGenerationError(ScratchEngineError):
    """A ticket could not be made unique or failed its own validation."""
