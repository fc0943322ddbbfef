"""Errors raised when a command cannot carry on."""

from __future__ import annotations


class CommandError(Exception):
    """A command failed; the message is what the user should see."""

    exit_code = 1

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def ensure(condition: object, message: str) -> None:
    """Raise CommandError with ``message`` unless ``condition`` holds."""
    if not condition:
        raise CommandError(message)


def fail(message: str) -> None:
    """Raise CommandError with ``message``."""
    raise CommandError(message)