"""Single-string translation through an OpenAI-compatible chat-completions endpoint."""
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from openai import OpenAI, OpenAIError

logger = logging.getLogger(__name__)

TRANSLATION_TEMPERATURE = 0.1

ChatTurn = Dict[str, str]


@dataclass(frozen=True)
class TranslationResult:
    """Outcome of one translation call: either ``text`` or an ``error`` message."""
    text: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.text is not None


class ChatHistory:
    """
    Conversation turns sent along with each request.

    Only the most recent ``limit`` user/assistant pairs are kept. A limit of 0
    disables history: nothing is sent and nothing is recorded.
    """

    def __init__(self, limit: int = 0):
        if limit < 0:
            raise ValueError(f"History limit must be >= 0, got {limit}")
        self.limit = limit
        self._turns: List[ChatTurn] = []

    @property
    def enabled(self) -> bool:
        return self.limit > 0

    def window(self) -> List[ChatTurn]:
        if not self.enabled:
            return []
        return [dict(turn) for turn in self._turns[-self.limit * 2:]]

    def record(self, user_text: str, assistant_text: str) -> None:
        if not self.enabled:
            return
        self._turns.append({"role": "user", "content": user_text})
        self._turns.append({"role": "assistant", "content": assistant_text})
        del self._turns[:-self.limit * 2]

    def clear(self) -> None:
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)


def clean_translated_text(raw_content: str, flatten: bool) -> str:
    """
    Trim the model output and, in flatten mode, force it onto a single line.

    Flattening turns every line break into a space and squeezes runs of spaces.
    """
    cleaned = raw_content.strip()
    if flatten:
        cleaned = cleaned.replace('\r\n', '\n').replace('\n', ' ')
        cleaned = re.sub(r' {2,}', ' ', cleaned)
    return cleaned


class TranslationClient:
    """
    Translate one text block at a time.

    Transport and payload problems never escape ``translate``; they come back as
    a failed TranslationResult and leave the history untouched.
    """

    def __init__(self, client: OpenAI, model_name: str, flatten_output: bool = True,
                 history: Optional[ChatHistory] = None):
        self.client = client
        self.model_name = model_name
        self.flatten_output = flatten_output
        self.history = history if history is not None else ChatHistory(0)

    def build_messages(self, text: str) -> List[ChatTurn]:
        messages = self.history.window()
        messages.append({"role": "user", "content": text})
        return messages

    def translate(self, text: str) -> TranslationResult:
        messages = self.build_messages(text)
        try:
            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=messages,
                temperature=TRANSLATION_TEMPERATURE,
                stream=False,
            )
            choices = response.choices
            if not choices:
                logger.warning("Model returned no choices for a %d-character request.", len(text))
                return TranslationResult(error="No response.")
            raw_content = choices[0].message.content
        except OpenAIError as api_exc:
            logger.error(f"API error occurred: {api_exc.__class__.__name__} - {api_exc}")
            return TranslationResult(error=f"Connection Error: {api_exc}")
        except Exception as general_exc:
            logger.error(f"An unexpected error occurred: {general_exc}", exc_info=True)
            return TranslationResult(error=f"Unexpected Error: {general_exc}")

        if raw_content is None:
            logger.warning("Model returned an empty message.")
            return TranslationResult(error="No response.")

        cleaned = clean_translated_text(raw_content, self.flatten_output)
        self.history.record(text, cleaned)
        logger.debug("Translated %d characters into %d characters.", len(text), len(cleaned))
        return TranslationResult(text=cleaned)

    def reset_history(self) -> None:
        self.history.clear()
        logger.info("Chat history cleared.")
