"""Intent translation through the OpenAI chat completions API."""

import logging
import os
from typing import Any

from openai import OpenAI, OpenAIError

from fsagent.core.config import ConfigError, TranslatorConfig
from fsagent.core.errors import IntentParseError
from fsagent.models.intent import Intent, parse_intent
from fsagent.translator.prompts import build_messages

logger = logging.getLogger(__name__)


class OpenAITranslator:
    """Translator backed by a chat model answering in JSON mode.

    Attributes:
        config: Translator settings (model, key variable, timeout).
    """

    def __init__(self, config: TranslatorConfig, client: Any = None) -> None:
        self.config = config
        self._client = client

    @property
    def client(self) -> Any:
        """Lazily built API client.

        Raises:
            ConfigError: If the API key environment variable is not set.
        """
        if self._client is None:
            api_key = os.environ.get(self.config.api_key_env)
            if not api_key:
                msg = (
                    f"No API key found: set {self.config.api_key_env} "
                    "to use natural-language commands"
                )
                raise ConfigError(msg)
            self._client = OpenAI(
                api_key=api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds,
            )
        return self._client

    def translate(self, text: str) -> Intent:
        """Translate one command into an intent.

        Raises:
            IntentParseError: If the command is empty, the request fails, or
                the reply is not a usable intent.
            IntentValidationError: If the reply names a type but misses fields.
            ConfigError: If no API key is configured.
        """
        command = text.strip()
        if not command:
            raise IntentParseError("Empty command")

        client = self.client
        logger.debug("Translating with %s: %s", self.config.model, command)
        try:
            response = client.chat.completions.create(
                model=self.config.model,
                messages=build_messages(command),
                temperature=self.config.temperature,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            logger.warning("Translation request failed: %s", e)
            raise IntentParseError(f"Translation service error: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise IntentParseError("Translation service returned an empty reply")
        logger.debug("Translator reply: %s", content)
        return parse_intent(content)

