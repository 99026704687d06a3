"""Natural-language to intent translation."""

from fsagent.translator.base import IntentTranslator
from fsagent.translator.openai_client import OpenAITranslator

__all__ = ["IntentTranslator", "OpenAITranslator"]
