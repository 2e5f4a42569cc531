import json
import logging
import os
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from gamedata_l10n.app_config import (
    AppConfig,
    DEFAULT_MDB_FILE_MAPPING,
    DEFAULT_RELOCATED_FOLDERS,
)


def make_completion(content):
    """Build an object shaped like an openai ChatCompletion with one choice."""
    message = SimpleNamespace(role="assistant", content=content)
    return SimpleNamespace(choices=[SimpleNamespace(index=0, message=message)])


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep test output free of log records."""
    logging.disable(logging.CRITICAL)
    yield
    logging.disable(logging.NOTSET)


@pytest.fixture
def fake_openai():
    """A MagicMock standing in for openai.OpenAI that answers "Hello"."""
    client = MagicMock()
    client.chat.completions.create.return_value = make_completion("Hello")
    return client


@pytest.fixture
def write_file():
    """Write a file (text or JSON) below a root, creating parent folders."""
    def _write(root, relative_path, content=""):
        full_path = os.path.join(root, relative_path)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, 'w', encoding='utf-8') as f:
            if isinstance(content, str):
                f.write(content)
            else:
                json.dump(content, f, ensure_ascii=False)
        return full_path
    return _write


@pytest.fixture
def app_config(tmp_path, fake_openai):
    return AppConfig(
        project_root=str(tmp_path),
        raw_dir=str(tmp_path / "raw"),
        reference_dir=str(tmp_path / "reference"),
        diff_dir=str(tmp_path / "diff"),
        relocated_folders=list(DEFAULT_RELOCATED_FOLDERS),
        data_subdir="data",
        mdb_folder="mdb",
        mdb_file_mapping=dict(DEFAULT_MDB_FILE_MAPPING),
        ignored_filenames=[".gitkeep"],
        base_url="http://localhost:1234/v1",
        model_name="local-model",
        api_key="lm-studio",
        flatten_output=True,
        history_limit=0,
        request_timeout=None,
        max_retries=0,
        openai_client=fake_openai,
    )
