"""Errors raised by the matching engine and application state"""


class InvalidInputError(ValueError):
    """Caller passed a value outside the engine's contract (bad urgency, blood group, organ...)"""


class NotFoundError(KeyError):
    """Referenced donor, recipient or notification does not exist"""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "not found"
