"""
Diff generation between a raw game data tree and an already-translated reference tree.

Plain files are compared by existence; structured-data (mdb) JSON files are
compared key by key and only their new keys are written to the diff tree.
"""
import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set

from tqdm import tqdm

from gamedata_l10n.app_config import (
    AppConfig,
    DEFAULT_MDB_FILE_MAPPING,
    DEFAULT_RELOCATED_FOLDERS,
)
from gamedata_l10n.json_io import dump_pretty_json, load_json_document
from gamedata_l10n.tree_diff import count_leaves, diff_nested_tree

logger = logging.getLogger(__name__)

MDB_UNMAPPED = 'unmapped'
MDB_COPIED = 'copied'
MDB_DIFFED = 'diffed'
MDB_UNCHANGED = 'unchanged'
MDB_INVALID = 'invalid'


@dataclass(frozen=True)
class DiffLayout:
    """Folder conventions shared by the raw and reference trees."""
    relocated_folders: FrozenSet[str] = frozenset(DEFAULT_RELOCATED_FOLDERS)
    data_subdir: str = 'data'
    mdb_folder: str = 'mdb'
    mdb_file_mapping: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_MDB_FILE_MAPPING))
    ignored_filenames: FrozenSet[str] = frozenset({'.gitkeep'})

    @classmethod
    def from_config(cls, config: AppConfig) -> "DiffLayout":
        return cls(
            relocated_folders=frozenset(config.relocated_folders),
            data_subdir=config.data_subdir,
            mdb_folder=config.mdb_folder,
            mdb_file_mapping=dict(config.mdb_file_mapping),
            ignored_filenames=frozenset(config.ignored_filenames),
        )


@dataclass
class MdbFileResult:
    filename: str
    status: str
    new_entries: int = 0
    detail: Optional[str] = None


@dataclass
class DiffSummary:
    copied_files: List[str] = field(default_factory=list)
    mdb_results: List[MdbFileResult] = field(default_factory=list)


def is_ignored_file(filename: str, layout: DiffLayout) -> bool:
    """Hidden files and marker placeholders such as .gitkeep never take part in a scan."""
    return filename.startswith('.') or filename in layout.ignored_filenames


def get_reference_path(raw_relative_path: str, layout: DiffLayout = DiffLayout()) -> str:
    """
    Map a raw-relative path to where its counterpart lives in the reference tree.

    Folders in the relocation set keep their files under an extra data
    subdirectory in the reference tree: ``home/foo.json`` becomes
    ``home/data/foo.json``. Every other path is used verbatim.
    """
    parts = raw_relative_path.split(os.sep)
    folder = parts[0]

    if len(parts) > 1 and folder in layout.relocated_folders:
        return os.path.join(folder, layout.data_subdir, *parts[1:])
    return raw_relative_path


def list_plain_files(raw_root: str, layout: DiffLayout = DiffLayout()) -> List[str]:
    """List raw-relative paths of every file outside the mdb folder, sorted."""
    relative_paths = []
    for dirpath, dirnames, filenames in os.walk(raw_root):
        if os.path.abspath(dirpath) == os.path.abspath(raw_root):
            dirnames[:] = [d for d in dirnames if d != layout.mdb_folder]
        dirnames.sort()
        for filename in sorted(filenames):
            if is_ignored_file(filename, layout):
                continue
            full_path = os.path.join(dirpath, filename)
            relative_paths.append(os.path.relpath(full_path, raw_root))
    return relative_paths


def find_missing_files(raw_root: str, reference_root: str, layout: DiffLayout = DiffLayout()) -> Set[str]:
    """
    Return the raw-relative paths that have no counterpart in the reference tree.

    Args:
        raw_root: Root of the raw data tree.
        reference_root: Root of the already-translated tree.
        layout: Folder relocation and exclusion rules.
    """
    missing_files = set()
    for raw_relative in list_plain_files(raw_root, layout):
        ref_file = os.path.join(reference_root, get_reference_path(raw_relative, layout))
        if not os.path.exists(ref_file):
            missing_files.add(raw_relative)
    return missing_files


def copy_missing_files(missing_files: Set[str], raw_root: str, diff_root: str) -> List[str]:
    """Copy each missing file byte-for-byte into the diff tree at its raw-relative path."""
    copied = []
    for relative_path in tqdm(sorted(missing_files), desc="Copying new files", unit="file"):
        src = os.path.join(raw_root, relative_path)
        dest = os.path.join(diff_root, relative_path)
        os.makedirs(os.path.dirname(dest), exist_ok=True)
        shutil.copyfile(src, dest)
        logger.info(f"Copied: {relative_path}")
        copied.append(relative_path)
    return copied


def _load_mdb_tree(file_path: str) -> Dict:
    data = load_json_document(file_path)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object at the top level, got {type(data).__name__}")
    return data


def process_mdb_file(raw_file: str, reference_dir: str, diff_dir: str,
                     layout: DiffLayout = DiffLayout()) -> MdbFileResult:
    """Diff one structured-data file against its mapped reference counterpart."""
    raw_filename = os.path.basename(raw_file)
    ref_filename = layout.mdb_file_mapping.get(raw_filename)

    if not ref_filename:
        logger.warning(f"No mapping for {raw_filename}, skipping")
        return MdbFileResult(raw_filename, MDB_UNMAPPED)

    ref_file = os.path.join(reference_dir, ref_filename)
    dest = os.path.join(diff_dir, raw_filename)

    if not os.path.exists(ref_file):
        os.makedirs(diff_dir, exist_ok=True)
        shutil.copyfile(raw_file, dest)
        logger.info(f"Copied entire file (no reference): {raw_filename}")
        return MdbFileResult(raw_filename, MDB_COPIED)

    try:
        raw_data = _load_mdb_tree(raw_file)
        ref_data = _load_mdb_tree(ref_file)
    except ValueError as exc:  # json.JSONDecodeError included
        logger.error(f"Could not parse {raw_filename} or its reference {ref_filename}: {exc}")
        return MdbFileResult(raw_filename, MDB_INVALID, detail=str(exc))

    diff_data = diff_nested_tree(raw_data, ref_data)
    if not diff_data:
        logger.info(f"No new keys in: {raw_filename}")
        return MdbFileResult(raw_filename, MDB_UNCHANGED)

    os.makedirs(diff_dir, exist_ok=True)
    with open(dest, 'w', encoding='utf-8') as f:
        f.write(dump_pretty_json(diff_data))

    count = count_leaves(diff_data)
    logger.info(f"Generated diff for {raw_filename}: {count} new entries")
    return MdbFileResult(raw_filename, MDB_DIFFED, new_entries=count)


def process_mdb_files(raw_root: str, reference_root: str, diff_root: str,
                      layout: DiffLayout = DiffLayout()) -> List[MdbFileResult]:
    """Run the key-level diff over every ``*.json`` file in the raw mdb folder."""
    mdb_raw_dir = os.path.join(raw_root, layout.mdb_folder)
    mdb_ref_dir = os.path.join(reference_root, layout.mdb_folder)
    mdb_diff_dir = os.path.join(diff_root, layout.mdb_folder)

    if not os.path.isdir(mdb_raw_dir):
        logger.info("No '%s' folder under '%s', skipping content diff.", layout.mdb_folder, raw_root)
        return []

    raw_files = sorted(
        os.path.join(mdb_raw_dir, name) for name in os.listdir(mdb_raw_dir)
        if name.endswith('.json') and not is_ignored_file(name, layout)
        and os.path.isfile(os.path.join(mdb_raw_dir, name))
    )

    logger.info("=== Processing MDB files (content diff) ===")
    return [process_mdb_file(raw_file, mdb_ref_dir, mdb_diff_dir, layout) for raw_file in raw_files]


def generate_diff(raw_root: str, reference_root: str, diff_root: str,
                  layout: DiffLayout = DiffLayout()) -> DiffSummary:
    """
    Populate ``diff_root`` with everything in ``raw_root`` not yet in ``reference_root``.

    Plain files are copied when their reference counterpart is missing; mdb files
    go through the key-level diff.
    """
    logger.info("=== Processing non-MDB files (file existence check) ===")
    missing_files = find_missing_files(raw_root, reference_root, layout)
    logger.info(f"Found {len(missing_files)} files in raw/ that don't exist in reference/")

    summary = DiffSummary()
    summary.copied_files = copy_missing_files(missing_files, raw_root, diff_root)
    summary.mdb_results = process_mdb_files(raw_root, reference_root, diff_root, layout)
    return summary
