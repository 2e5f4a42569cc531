import re
from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple, Union

PathStep = Union[str, int]
JsonPath = Tuple[PathStep, ...]

# Hiragana, Katakana and Han script ranges. U+30FB and U+30FC are Common
# script and are not matched.
_HIRAGANA = '\u3041-\u3096\u309D-\u309F\U0001B001-\U0001B11F\U0001F200'
_KATAKANA = ('\u30A1-\u30FA\u30FD-\u30FF\u31F0-\u31FF\u32D0-\u32FE\u3300-\u3357'
             '\uFF66-\uFF6F\uFF71-\uFF9D\U0001B000')
_HAN = ('\u2E80-\u2E99\u2E9B-\u2EF3\u2F00-\u2FD5\u3005\u3007\u3021-\u3029\u3038-\u303B'
        '\u3400-\u4DBF\u4E00-\u9FFF\uF900-\uFA6D\uFA70-\uFAD9'
        '\U00020000-\U0002A6DF\U0002A700-\U0002EBE0\U0002EBF0-\U0002EE5D'
        '\U0002F800-\U0002FA1D\U00030000-\U0003134A\U00031350-\U000323AF')

SOURCE_SCRIPT_PATTERN = re.compile(f'[{_HIRAGANA}{_KATAKANA}{_HAN}]')


class PathMismatchError(LookupError):
    """Raised when a path does not resolve inside a JSON document."""

    def __init__(self, path: Sequence[PathStep], reason: str):
        self.path = tuple(path)
        self.reason = reason
        super().__init__(f"Path mismatch at {format_path(path)}: {reason}")


@dataclass(frozen=True)
class PathEntry:
    """A qualifying string and the path that leads to it."""
    path: JsonPath
    value: str


def format_path(path: Sequence[PathStep]) -> str:
    """Render a path for display, e.g. ``story -> 3 -> text``."""
    return ' -> '.join(str(step) for step in path) if path else '<root>'


def needs_translation(text: Any) -> bool:
    """True for non-empty strings containing Hiragana, Katakana or Han characters."""
    if not isinstance(text, str) or not text:
        return False
    return SOURCE_SCRIPT_PATTERN.search(text) is not None


def harvest_strings(value: Any, path_prefix: Sequence[PathStep] = ()) -> List[PathEntry]:
    """
    Collect every qualifying string leaf of a JSON value, depth-first.

    Mappings are walked in key order and lists in index order, so repeated runs
    over the same document return entries in the same order.
    """
    path = tuple(path_prefix)
    results: List[PathEntry] = []

    if isinstance(value, dict):
        for key, child in value.items():
            results.extend(harvest_strings(child, path + (key,)))
    elif isinstance(value, list):
        for index, child in enumerate(value):
            results.extend(harvest_strings(child, path + (index,)))
    elif isinstance(value, str) and needs_translation(value):
        results.append(PathEntry(path=path, value=value))

    return results


def _step_into(container: Any, step: PathStep, path: Sequence[PathStep]) -> Any:
    if isinstance(container, dict):
        if step not in container:
            raise PathMismatchError(path, f"missing key {step!r}")
        return container[step]
    if isinstance(container, list):
        if isinstance(step, bool) or not isinstance(step, int):
            raise PathMismatchError(path, f"expected a list index, got {step!r}")
        if not 0 <= step < len(container):
            raise PathMismatchError(path, f"index {step} out of range for list of length {len(container)}")
        return container[step]
    raise PathMismatchError(path, f"cannot step into {type(container).__name__} with {step!r}")


def get_value_at_path(document: Any, path: Sequence[PathStep]) -> Any:
    """Return the value found by following ``path`` from ``document``."""
    current = document
    for depth, step in enumerate(path):
        current = _step_into(current, step, path[:depth + 1])
    return current


def set_value_at_path(document: Any, path: Sequence[PathStep], value: Any) -> None:
    """
    Replace the value at an existing ``path`` inside ``document``.

    Only the addressed slot changes. Raises PathMismatchError when the path does
    not already exist, so a stale path never creates new keys.
    """
    if not path:
        raise PathMismatchError(path, "cannot replace the document root")

    parent = get_value_at_path(document, path[:-1])
    last = path[-1]
    # Validates the final step the same way a read would
    _step_into(parent, last, path)
    parent[last] = value
