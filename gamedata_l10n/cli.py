"""Command-line entry points."""
import argparse
import logging
import os
import sys
from typing import List, Optional

from gamedata_l10n.app_config import load_app_config
from gamedata_l10n.chat import run_chat
from gamedata_l10n.json_io import load_json_document
from gamedata_l10n.json_paths import harvest_strings
from gamedata_l10n.reconcile import (
    MDB_COPIED,
    MDB_DIFFED,
    MDB_INVALID,
    MDB_UNCHANGED,
    MDB_UNMAPPED,
    DiffLayout,
    MdbFileResult,
    generate_diff,
)
from gamedata_l10n.review_loop import ReviewSession
from gamedata_l10n.translation_client import ChatHistory, TranslationClient

logger = logging.getLogger(__name__)


def _add_config_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--config', default=None,
                        help="Path to a YAML configuration file (default: config.yaml in the project root).")


def _build_translator(config, history_limit: int) -> TranslationClient:
    return TranslationClient(
        client=config.openai_client,
        model_name=config.model_name,
        flatten_output=config.flatten_output,
        history=ChatHistory(history_limit),
    )


def _describe_mdb_result(result: MdbFileResult) -> str:
    if result.status == MDB_UNMAPPED:
        return f"{result.filename}: No mapping, skipping"
    if result.status == MDB_COPIED:
        return f"{result.filename}: Copied entire file (no reference)"
    if result.status == MDB_INVALID:
        return f"{result.filename}: Invalid JSON, skipping ({result.detail})"
    if result.status == MDB_UNCHANGED:
        return f"{result.filename}: No new keys"
    return f"{result.filename}: {result.new_entries} new entries"


def translate_json_main(argv: Optional[List[str]] = None) -> int:
    """Interactively translate the Japanese strings of one JSON file in place."""
    parser = argparse.ArgumentParser(
        prog='gamedata-translate-json',
        description="Translate the Japanese strings of a JSON file in place, one reviewed string at a time.",
    )
    parser.add_argument('input_file', help="JSON file to translate in place.")
    _add_config_argument(parser)
    args = parser.parse_args(argv)

    input_file = args.input_file
    if not os.path.isfile(input_file):
        print(f"Error: File '{input_file}' not found.", file=sys.stderr)
        return 1

    print(f"File: {input_file}")

    try:
        document = load_json_document(input_file)
    except OSError as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        return 1
    except ValueError as e:  # json.JSONDecodeError or undecodable bytes
        print(f"Error parsing JSON: {e}", file=sys.stderr)
        return 1

    entries = harvest_strings(document)
    if not entries:
        print("\nNo Japanese text found in the file.")
        return 0

    config = load_app_config(args.config, with_client=True)
    print(f"\nFound {len(entries)} string(s) to translate.\n")

    session = ReviewSession(document, input_file, _build_translator(config, config.history_limit))
    session.run(entries)
    return 0


def diff_main(argv: Optional[List[str]] = None) -> int:
    """Copy new raw files and new mdb keys into the diff tree."""
    parser = argparse.ArgumentParser(
        prog='gamedata-diff',
        description="Write the raw files and mdb keys missing from the reference tree into the diff tree.",
    )
    parser.add_argument('--raw', default=None, help="Raw data root (overrides paths.raw_dir).")
    parser.add_argument('--reference', default=None, help="Reference root (overrides paths.reference_dir).")
    parser.add_argument('--diff', default=None, help="Output root (overrides paths.diff_dir).")
    _add_config_argument(parser)
    args = parser.parse_args(argv)

    config = load_app_config(args.config)
    raw_root = os.path.abspath(args.raw) if args.raw else config.raw_dir
    reference_root = os.path.abspath(args.reference) if args.reference else config.reference_dir
    diff_root = os.path.abspath(args.diff) if args.diff else config.diff_dir

    if not os.path.isdir(raw_root):
        logger.error("Raw folder '%s' does not exist.", raw_root)
        print(f"Error: Raw folder '{raw_root}' does not exist.", file=sys.stderr)
        return 1

    summary = generate_diff(raw_root, reference_root, diff_root, DiffLayout.from_config(config))

    for result in summary.mdb_results:
        print(_describe_mdb_result(result))

    new_entries = sum(r.new_entries for r in summary.mdb_results if r.status == MDB_DIFFED)
    print(f"\nCopied {len(summary.copied_files)} new file(s); "
          f"{new_entries} new mdb entr{'y' if new_entries == 1 else 'ies'}.")
    print("Done!")
    return 0


def chat_main(argv: Optional[List[str]] = None) -> int:
    """Free-text translation prompt."""
    parser = argparse.ArgumentParser(
        prog='gamedata-chat',
        description="Translate typed text with the local model, optionally keeping recent turns as context.",
    )
    parser.add_argument('--history', type=int, default=None,
                        help="Number of previous exchanges sent as context (0 disables history).")
    _add_config_argument(parser)
    args = parser.parse_args(argv)

    if args.history is not None and args.history < 0:
        parser.error("--history must be 0 or greater")

    config = load_app_config(args.config, with_client=True)
    history_limit = config.history_limit if args.history is None else args.history
    run_chat(_build_translator(config, history_limit))
    return 0


if __name__ == "__main__":
    sys.exit(translate_json_main())
