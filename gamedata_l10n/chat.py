"""Free-text translation prompt that keeps a short conversation history."""
import logging
from typing import Callable, Optional

from gamedata_l10n.translation_client import TranslationClient

logger = logging.getLogger(__name__)

BANNER = "=" * 49


def run_chat(translator: TranslationClient,
             read_line: Optional[Callable[[str], str]] = None,
             write: Optional[Callable[..., None]] = None) -> int:
    """
    Translate each line the operator types until ``exit`` or end of input.

    ``clear`` drops the conversation history. Returns the number of lines
    translated successfully.
    """
    read_line = read_line or input
    write = write or print

    write(BANNER)
    write(" Japanese -> English (Clean Copy Mode)")
    write(BANNER)
    write("Type 'exit' to quit. Type 'clear' to reset memory.")

    translated = 0
    while True:
        try:
            line = read_line("\n> ")
        except EOFError:
            break

        command = line.strip().lower()
        if command == 'exit':
            break
        if not command:
            continue
        if command == 'clear':
            translator.reset_history()
            write("[Memory Cleared]")
            continue

        result = translator.translate(line)
        if result.ok:
            translated += 1
            # Only the translation, so it can be selected with a double click
            write("\n" + result.text + "\n")
        else:
            write("\n" + (result.error or "Error: No response.") + "\n")

    logger.info("Chat session ended after %d translation(s).", translated)
    return translated
