import json
import logging
import os
import shutil
import tempfile
from typing import Any

logger = logging.getLogger(__name__)


def load_json_document(file_path: str) -> Any:
    """
    Load a JSON document.

    Raises:
        OSError: The file could not be read.
        json.JSONDecodeError: The file is not valid JSON.
    """
    with open(file_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def dump_pretty_json(data: Any) -> str:
    """Pretty-print JSON with two-space indentation, keeping non-ASCII text readable."""
    return json.dumps(data, ensure_ascii=False, indent=2)


def save_json_document(file_path: str, data: Any) -> None:
    """
    Rewrite ``file_path`` with the whole document.

    The content goes to a temporary file in the same directory first and is then
    moved over the target, so readers see either the old or the new document.
    """
    target_dir = os.path.dirname(os.path.abspath(file_path))
    os.makedirs(target_dir, exist_ok=True)
    content = dump_pretty_json(data)

    temp_file_path = None
    try:
        with tempfile.NamedTemporaryFile(mode='w', delete=False, dir=target_dir, suffix='.tmp',
                                         encoding='utf-8') as temp_f:
            temp_file_path = temp_f.name
            temp_f.write(content)
            temp_f.flush()
            os.fsync(temp_f.fileno())
        if os.path.exists(file_path):
            # mkstemp files are private; keep the original permissions
            shutil.copymode(file_path, temp_file_path)
        os.replace(temp_file_path, file_path)
        temp_file_path = None
    finally:
        if temp_file_path and os.path.exists(temp_file_path):
            try:
                os.remove(temp_file_path)
            except OSError as _e:
                logger.warning("Could not delete temporary file '%s': %s", temp_file_path, _e)

    logger.debug("Wrote %d characters to '%s'", len(content), file_path)
