"""Unit tests for the interactive review state machine."""
import functools
import io
import json
from unittest.mock import MagicMock, call

import pytest

from gamedata_l10n.json_paths import harvest_strings
from gamedata_l10n.review_loop import ItemOutcome, ReviewSession, ReviewSummary
from gamedata_l10n.translation_client import TranslationResult


def scripted_input(*lines):
    """Feed operator input line by line; running out behaves like end of input."""
    return MagicMock(side_effect=list(lines) + [EOFError()])


@pytest.fixture
def document_file(tmp_path):
    def _make(document):
        path = tmp_path / "doc.json"
        path.write_text(json.dumps(document, ensure_ascii=False), encoding='utf-8')
        return str(path)
    return _make


def read_document(path):
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def make_session(document, path, translator, *lines, edit_line=None):
    output = io.StringIO()
    session = ReviewSession(
        document, path, translator,
        read_line=scripted_input(*lines),
        write=functools.partial(print, file=output),
        edit_line=edit_line or MagicMock(return_value=None),
    )
    return session, output


def translator_returning(*results):
    translator = MagicMock()
    translator.translate.side_effect = [
        r if isinstance(r, TranslationResult) else TranslationResult(text=r) for r in results
    ]
    return translator


class TestReviewSession:

    def test_save_writes_translation_and_reports_counts(self, document_file):
        path = document_file({"greeting": "こんにちは"})
        document = read_document(path)
        session, output = make_session(document, path, translator_returning("Hello"), "s")

        summary = session.run()

        assert read_document(path) == {"greeting": "Hello"}
        assert summary == ReviewSummary(translated=1, skipped=0, aborted=False)
        assert "Translated: 1, Skipped: 0" in output.getvalue()

    def test_keep_original_leaves_document_unchanged(self, document_file):
        path = document_file({"greeting": "こんにちは"})
        session, output = make_session(read_document(path), path, translator_returning("Hello"), "k")

        summary = session.run()

        assert read_document(path) == {"greeting": "こんにちは"}
        assert (summary.translated, summary.skipped) == (0, 1)
        assert "Translated: 0, Skipped: 1" in output.getvalue()

    def test_commands_are_case_insensitive(self, document_file):
        path = document_file({"greeting": "こんにちは"})
        session, _ = make_session(read_document(path), path, translator_returning("Hello"), "  S  ")

        assert session.run().translated == 1

    def test_failure_then_quit_stops_before_later_items(self, document_file):
        original = {"a": "一", "b": "二"}
        path = document_file(original)
        translator = translator_returning(TranslationResult(error="Connection Error: refused"))
        session, output = make_session(read_document(path), path, translator, "q")

        summary = session.run()

        assert summary.aborted
        assert (summary.translated, summary.skipped) == (0, 0)
        assert translator.translate.call_count == 1
        assert read_document(path) == original
        assert "Connection Error: refused" in output.getvalue()

    def test_failed_document_is_still_rewritten_on_quit(self, document_file):
        path = document_file({"a": "一"})
        session, _ = make_session(read_document(path), path,
                                  translator_returning(TranslationResult(error="boom")), "q")
        session.persist = MagicMock(wraps=session.persist)

        session.run()

        session.persist.assert_called_once()

    def test_failure_then_keep_moves_to_next_item(self, document_file):
        path = document_file({"a": "一", "b": "二"})
        translator = translator_returning(TranslationResult(error="boom"), "Two")
        session, _ = make_session(read_document(path), path, translator, "k", "s")

        summary = session.run()

        assert (summary.translated, summary.skipped) == (1, 1)
        assert read_document(path) == {"a": "一", "b": "Two"}

    def test_quit_during_review_persists_earlier_saves(self, document_file):
        path = document_file({"a": "一", "b": "二", "c": "三"})
        translator = translator_returning("One", "Two")
        session, _ = make_session(read_document(path), path, translator, "s", "q")

        summary = session.run()

        assert summary.aborted
        assert summary.translated == 1
        assert translator.translate.call_count == 2
        assert read_document(path) == {"a": "One", "b": "二", "c": "三"}

    def test_end_of_input_is_quit(self, document_file):
        path = document_file({"a": "一"})
        session, _ = make_session(read_document(path), path, translator_returning("One"))

        summary = session.run()

        assert summary.aborted
        assert read_document(path) == {"a": "一"}

    def test_each_save_is_persisted_immediately(self, document_file):
        path = document_file({"a": "一", "b": "二"})
        snapshots = []
        translator = translator_returning("One", "Two")
        session, _ = make_session(read_document(path), path, translator, "s", "s")
        original_persist = session.persist

        def persist_and_snapshot():
            original_persist()
            snapshots.append(read_document(path))
        session.persist = persist_and_snapshot

        session.run()

        assert snapshots[0] == {"a": "One", "b": "二"}
        assert snapshots[1] == {"a": "One", "b": "Two"}
        assert snapshots[-1] == {"a": "One", "b": "Two"}

    def test_edit_replaces_candidate_prefilled_with_current(self, document_file):
        path = document_file({"a": "一"})
        edit_line = MagicMock(return_value="Number one")
        session, _ = make_session(read_document(path), path, translator_returning("One"),
                                  "e", "s", edit_line=edit_line)

        session.run()

        edit_line.assert_called_once_with("> ", "One")
        assert read_document(path) == {"a": "Number one"}

    def test_empty_edit_keeps_candidate(self, document_file):
        path = document_file({"a": "一"})
        session, _ = make_session(read_document(path), path, translator_returning("One"),
                                  "e", "s", edit_line=MagicMock(return_value=""))

        session.run()

        assert read_document(path) == {"a": "One"}

    def test_regenerate_replaces_candidate(self, document_file):
        path = document_file({"a": "一"})
        translator = translator_returning("Won", "One")
        session, _ = make_session(read_document(path), path, translator, "r", "s")

        session.run()

        assert translator.translate.call_count == 2
        translator.translate.assert_called_with("一")
        assert read_document(path) == {"a": "One"}

    def test_failed_regenerate_keeps_previous_candidate(self, document_file):
        path = document_file({"a": "一"})
        translator = translator_returning("One", TranslationResult(error="timeout"))
        session, output = make_session(read_document(path), path, translator, "r", "s")

        session.run()

        assert read_document(path) == {"a": "One"}
        assert "Keeping previous translation." in output.getvalue()

    def test_unknown_command_stays_in_review(self, document_file):
        path = document_file({"a": "一"})
        session, output = make_session(read_document(path), path, translator_returning("One"), "x", "s")

        session.run()

        assert "Unknown option" in output.getvalue()
        assert read_document(path) == {"a": "One"}

    def test_nested_and_list_paths_are_written_in_place(self, document_file):
        original = {"menu": {"items": ["開始", "quit", "終了"]}, "id": 7}
        path = document_file(original)
        session, _ = make_session(read_document(path), path, translator_returning("Start", "Exit"), "s", "s")

        session.run()

        assert read_document(path) == {"menu": {"items": ["Start", "quit", "Exit"]}, "id": 7}

    def test_progress_header_and_path_are_shown(self, document_file):
        path = document_file({"a": {"b": "一"}, "c": "二"})
        session, output = make_session(read_document(path), path, translator_returning("One", "Two"), "k", "k")

        session.run()

        text = output.getvalue()
        assert "[1/2]" in text and "[2/2]" in text
        assert "--- Path: a -> b ---" in text

    def test_review_item_outcomes(self, document_file):
        path = document_file({"a": "一"})
        document = read_document(path)
        entry = harvest_strings(document)[0]

        session, _ = make_session(document, path, translator_returning("One"), "k")
        assert session.review_item(1, 1, entry) is ItemOutcome.SKIPPED

        session, _ = make_session(document, path, translator_returning("One"), "q")
        assert session.review_item(1, 1, entry) is ItemOutcome.ABORTED

    def test_output_is_pretty_printed_utf8(self, document_file):
        path = document_file({"a": "一", "b": "二"})
        session, _ = make_session(read_document(path), path, translator_returning("One", "Two"), "s", "k")

        session.run()

        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
        assert content == '{\n  "a": "One",\n  "b": "二"\n}'

    def test_progress_text_is_flushed_before_each_request(self, document_file):
        path = document_file({"a": "一"})
        write = MagicMock()
        session = ReviewSession(
            read_document(path), path, translator_returning("One", "Uno"),
            read_line=scripted_input("r", "s"), write=write, edit_line=MagicMock(return_value=None),
        )

        session.run()

        assert call("Translating... ", end='', flush=True) in write.call_args_list
        assert call("Regenerating... ", end='', flush=True) in write.call_args_list
        assert read_document(path) == {"a": "Uno"}
