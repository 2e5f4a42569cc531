"""
Interactive review of machine translations for one JSON document.

Each qualifying string is translated, shown to the operator and then saved,
edited, regenerated, kept as the original, or the run is ended. The whole
document is rewritten on every save and when the run ends, so no decision that
was saved is lost if the process is interrupted.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from gamedata_l10n.json_io import save_json_document
from gamedata_l10n.json_paths import PathEntry, format_path, harvest_strings, set_value_at_path
from gamedata_l10n.translation_client import TranslationClient, TranslationResult

logger = logging.getLogger(__name__)

ACTION_MENU = "[s]ave | [e]dit | [r]egenerate | [k]eep original | [q]uit"
SEPARATOR = '=' * 50


class ItemOutcome(enum.Enum):
    SAVED = 'saved'
    SKIPPED = 'skipped'
    ABORTED = 'aborted'


@dataclass
class ReviewState:
    """Working translation of the item under review."""
    translation: str
    attempts: int = 1


@dataclass
class ReviewSummary:
    translated: int = 0
    skipped: int = 0
    aborted: bool = False

    def totals_line(self) -> str:
        return f"Translated: {self.translated}, Skipped: {self.skipped}"


def prefilled_input(prompt: str, default: str) -> Optional[str]:
    """
    Read a line with ``default`` already typed in, so it can be corrected in place.

    Returns None at end of input.
    """
    import readline

    readline.set_startup_hook(lambda: readline.insert_text(default))
    try:
        return input(prompt)
    except EOFError:
        return None
    finally:
        readline.set_startup_hook()


class ReviewSession:
    """Owns the live document and walks its qualifying strings one at a time."""

    def __init__(self, document: Any, document_path: str, translator: TranslationClient,
                 read_line: Optional[Callable[[str], str]] = None,
                 write: Optional[Callable[..., None]] = None,
                 edit_line: Optional[Callable[[str, str], Optional[str]]] = None):
        self.document = document
        self.document_path = document_path
        self.translator = translator
        self.read_line = read_line or input
        self.write = write or print
        self.edit_line = edit_line or prefilled_input
        self.summary = ReviewSummary()

    def persist(self) -> None:
        save_json_document(self.document_path, self.document)
        logger.debug("Persisted '%s'", self.document_path)

    def run(self, entries: Optional[Sequence[PathEntry]] = None) -> ReviewSummary:
        if entries is None:
            entries = harvest_strings(self.document)
        total = len(entries)

        for index, entry in enumerate(entries, start=1):
            outcome = self.review_item(index, total, entry)
            if outcome is ItemOutcome.SAVED:
                self.summary.translated += 1
            elif outcome is ItemOutcome.SKIPPED:
                self.summary.skipped += 1
            else:
                self.summary.aborted = True
                break

        if self.summary.aborted:
            self.write(self.summary.totals_line())
        else:
            self.write(f"\n{SEPARATOR}")
            self.write("Translation complete!")
            self.write(self.summary.totals_line())
            self.write(SEPARATOR)
            self.persist()
            self.write(f"Saved to: {self.document_path}")

        logger.info("Review of '%s' finished: %s%s", self.document_path, self.summary.totals_line(),
                    " (aborted)" if self.summary.aborted else "")
        return self.summary

    def review_item(self, index: int, total: int, entry: PathEntry) -> ItemOutcome:
        original = entry.value

        self.write(f"\n{SEPARATOR}")
        self.write(f"[{index}/{total}]")
        self.write(f"\n--- Path: {format_path(entry.path)} ---")
        self.write("\nOriginal:")
        self.write(original)
        self.write("")

        self.write("Translating... ", end='', flush=True)
        result = self.translator.translate(original)

        if not result.ok:
            return self._handle_fetch_failure(entry, result)

        state = ReviewState(translation=result.text)
        self.write("Done!\n")
        self.write("Translation:")
        self.write(state.translation)

        while True:
            action = self._prompt_action()

            if action == 's':
                set_value_at_path(self.document, entry.path, state.translation)
                self.persist()
                self.write("Saved!")
                logger.debug("Saved translation for %s after %d attempt(s)", format_path(entry.path),
                             state.attempts)
                return ItemOutcome.SAVED

            if action == 'e':
                edited = self.edit_line("> ", state.translation)
                if edited:
                    state.translation = edited
                self.write("\nUpdated translation:")
                self.write(state.translation)

            elif action == 'r':
                self.write("Regenerating... ", end='', flush=True)
                state.attempts += 1
                regenerated = self.translator.translate(original)
                if regenerated.ok:
                    state.translation = regenerated.text
                    self.write("Done!\n")
                    self.write("New translation:")
                    self.write(state.translation)
                else:
                    self.write(f"Failed! {regenerated.error}")
                    self.write("Keeping previous translation.")

            elif action == 'k':
                self.write("Keeping original.")
                return ItemOutcome.SKIPPED

            elif action == 'q':
                self._abort()
                return ItemOutcome.ABORTED

            else:
                self.write("Unknown option. Please choose [s]ave, [e]dit, [r]egenerate, [k]eep, or [q]uit.")

    def _handle_fetch_failure(self, entry: PathEntry, result: TranslationResult) -> ItemOutcome:
        self.write("Failed!")
        self.write(result.error or "Unknown error.")
        logger.warning("Translation failed for %s: %s", format_path(entry.path), result.error)

        action = self._read_command("Could not get translation. [k]eep original or [q]uit? ")
        if action == 'q':
            self._abort()
            return ItemOutcome.ABORTED
        return ItemOutcome.SKIPPED

    def _abort(self) -> None:
        self.write("\nSaving progress and exiting...")
        self.persist()
        self.write(f"Saved to: {self.document_path}")

    def _prompt_action(self) -> str:
        self.write(f"\n{ACTION_MENU}")
        return self._read_command("> ")

    def _read_command(self, prompt: str) -> str:
        """Read one command, lower-cased. End of input means quit."""
        try:
            line = self.read_line(prompt)
        except EOFError:
            return 'q'
        return line.strip().lower()
