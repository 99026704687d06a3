"""Translator interface.

A translator turns one free-text command into one validated intent. The
rest of the agent only depends on this protocol, so tests and offline use
can swap in anything with a matching ``translate`` method.
"""

from typing import Protocol

from fsagent.models.intent import Intent


class IntentTranslator(Protocol):
    """Converts natural language into intents."""

    def translate(self, text: str) -> Intent:
        """Translate a command.

        Args:
            text: The user's command, e.g. "make a folder called notes".

        Returns:
            The validated intent.

        Raises:
            IntentParseError: If the text cannot be understood.
            IntentValidationError: If the translation is missing fields.
        """
        ...
