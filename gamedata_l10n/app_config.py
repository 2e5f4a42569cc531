"""Application configuration for the diff and translation tools."""
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any

import yaml
from dotenv import load_dotenv
from openai import OpenAI

from gamedata_l10n.logging_config import setup_logger

CONFIG_ENV_VAR = 'GAMEDATA_L10N_CONFIG'

DEFAULT_BASE_URL = 'http://localhost:1234/v1'
DEFAULT_MODEL_NAME = 'local-model'
# Local OpenAI-compatible servers ignore the key, but the SDK requires one.
DEFAULT_API_KEY = 'lm-studio'

# Folders that have a 'data' subdirectory in reference but not in raw
DEFAULT_RELOCATED_FOLDERS = ['home', 'story']

# Raw mdb file -> reference counterpart
DEFAULT_MDB_FILE_MAPPING = {
    'character_system_text.json': 'character_system_text_dict.json',
    'text_data.json': 'text_data_dict.json',
    'text_data_dict.json': 'text_data_dict.json',
    'race_jikkyo_comment.json': 'race_jikkyo_comment.json',
    'race_jikkyo_message.json': 'race_jikkyo_message.json',
}


@dataclass
class AppConfig:
    """Application configuration dataclass."""
    # Core paths
    project_root: str
    raw_dir: str
    reference_dir: str
    diff_dir: str

    # Diff layout
    relocated_folders: List[str]
    data_subdir: str
    mdb_folder: str
    mdb_file_mapping: Dict[str, str]
    ignored_filenames: List[str]

    # Model configuration
    base_url: str
    model_name: str
    api_key: str
    flatten_output: bool
    history_limit: int
    request_timeout: Optional[float]
    max_retries: int

    # OpenAI-compatible client, only built for the commands that talk to the model
    openai_client: Optional[OpenAI] = field(default=None, repr=False)


def _compute_project_root() -> str:
    """Compute the project root directory."""
    package_dir = os.path.dirname(os.path.realpath(__file__))
    return os.path.abspath(os.path.join(package_dir, os.pardir))


def _load_dotenv_files(project_root: str) -> Optional[str]:
    """Load the first .env file found in the project root or docker directory."""
    for dotenv_path in (os.path.join(project_root, '.env'),
                        os.path.join(project_root, 'docker', '.env')):
        if os.path.exists(dotenv_path):
            load_dotenv(dotenv_path)
            return dotenv_path
    return None


def _load_yaml_config(project_root: str, config_file: Optional[str] = None) -> Dict[str, Any]:
    """Load the YAML configuration file, falling back to an empty mapping on any problem."""
    if config_file is None:
        default_config_path = os.path.join(project_root, 'config.yaml')
        config_file = os.environ.get(CONFIG_ENV_VAR, default_config_path)

    if not os.path.isabs(config_file):
        config_file = os.path.abspath(config_file)

    config = {}
    try:
        if not os.path.exists(config_file):
            print(f"Warning: Configuration file '{config_file}' not found. Using default configuration.",
                  file=sys.stderr)
            print(f"Tip: Create a config.yaml file in '{project_root}' or set {CONFIG_ENV_VAR}.",
                  file=sys.stderr)
            return config

        if not os.access(config_file, os.R_OK):
            print(f"Error: Configuration file '{config_file}' exists but is not readable. Check file permissions.",
                  file=sys.stderr)
            return config

        with open(config_file, 'r', encoding='utf-8') as config_file_stream:
            loaded_config = yaml.safe_load(config_file_stream)
            if loaded_config is None:
                print(f"Warning: Configuration file '{config_file}' is empty. Using default configuration.",
                      file=sys.stderr)
            elif isinstance(loaded_config, dict):
                config = loaded_config
            else:
                print(f"Error: Configuration file '{config_file}' must contain a YAML dictionary. Using defaults.",
                      file=sys.stderr)

    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file '{config_file}': {e}", file=sys.stderr)
        print("Please check your YAML syntax. Using default configuration.", file=sys.stderr)
    except OSError as e:
        print(f"Error: Could not read configuration file '{config_file}': {e}", file=sys.stderr)
        print("Using default configuration.", file=sys.stderr)

    return config


def _setup_logger_from_config(config: Dict[str, Any]) -> logging.Logger:
    """Set up logger based on configuration."""
    log_config = config.get('logging') or {}
    log_level_str = str(log_config.get('log_level', 'INFO')).upper()
    log_file_path = log_config.get('log_file_path', 'logs/gamedata_l10n.log')
    log_to_console = log_config.get('log_to_console', True)
    return setup_logger(log_level_str, log_file_path, log_to_console)


def _resolve_dir(path: str) -> str:
    """Relative data directories are resolved against the working directory."""
    return os.path.abspath(os.path.expanduser(path))


def _parse_timeout(value: Any) -> Optional[float]:
    if value is None or value == '':
        return None
    return float(value)


def create_openai_client(config: AppConfig, logger: Optional[logging.Logger] = None) -> OpenAI:
    """
    Build a synchronous OpenAI client pointed at the configured endpoint.

    When ``request_timeout`` is unset the SDK default timeout applies.
    """
    logger = logger or logging.getLogger(__name__)
    client_kwargs: Dict[str, Any] = {
        'base_url': config.base_url,
        'api_key': config.api_key,
        'max_retries': config.max_retries,
    }
    if config.request_timeout is not None:
        client_kwargs['timeout'] = config.request_timeout

    try:
        client = OpenAI(**client_kwargs)
    except Exception as e:
        logger.critical("Failed to initialize OpenAI client for '%s': %s", config.base_url, e)
        sys.exit(1)

    logger.info("OpenAI client initialized for %s (model: %s)", config.base_url, config.model_name)
    return client


def load_app_config(config_file: Optional[str] = None, with_client: bool = False) -> AppConfig:
    """
    Load application configuration from YAML file and environment variables.

    Args:
        config_file: Explicit configuration path. Defaults to the
            GAMEDATA_L10N_CONFIG environment variable, then ``config.yaml`` in the
            project root.
        with_client: Also build the OpenAI client used by the translation commands.

    Returns:
        AppConfig: The loaded application configuration.
    """
    project_root = _compute_project_root()
    dotenv_path = _load_dotenv_files(project_root)
    config = _load_yaml_config(project_root, config_file)
    logger = _setup_logger_from_config(config)

    if dotenv_path:
        logger.info("Loaded environment variables from: %s", dotenv_path)
    else:
        logger.debug("No .env file found under '%s'. Relying on system environment variables if any.",
                     project_root)

    paths = config.get('paths') or {}
    layout = config.get('layout') or {}
    llm = config.get('llm') or {}

    api_key = os.environ.get('LLM_API_KEY') or llm.get('api_key') or DEFAULT_API_KEY

    app_config = AppConfig(
        project_root=project_root,
        raw_dir=_resolve_dir(paths.get('raw_dir', 'raw')),
        reference_dir=_resolve_dir(paths.get('reference_dir', 'reference')),
        diff_dir=_resolve_dir(paths.get('diff_dir', 'diff')),
        relocated_folders=list(layout.get('relocated_folders', DEFAULT_RELOCATED_FOLDERS)),
        data_subdir=layout.get('data_subdir', 'data'),
        mdb_folder=layout.get('mdb_folder', 'mdb'),
        mdb_file_mapping=dict(layout.get('mdb_file_mapping', DEFAULT_MDB_FILE_MAPPING)),
        ignored_filenames=list(layout.get('ignored_filenames', ['.gitkeep'])),
        base_url=os.environ.get('LLM_BASE_URL', llm.get('base_url', DEFAULT_BASE_URL)),
        model_name=os.environ.get('LLM_MODEL_NAME', llm.get('model_name', DEFAULT_MODEL_NAME)),
        api_key=api_key,
        flatten_output=bool(llm.get('flatten_output', True)),
        history_limit=int(llm.get('history_limit', 0)),
        request_timeout=_parse_timeout(llm.get('request_timeout')),
        max_retries=int(llm.get('max_retries', 0)),
    )

    if with_client:
        app_config.openai_client = create_openai_client(app_config, logger)

    return app_config
