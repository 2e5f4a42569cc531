from typing import Any, Dict, Optional

KeyTree = Dict[str, Any]


def diff_nested_tree(source: KeyTree, reference: Optional[KeyTree]) -> KeyTree:
    """
    Return the part of ``source`` whose keys are missing from ``reference``.

    Keys absent from the reference carry their whole subtree over. Keys present
    on both sides recurse when both values are mappings and are kept only if
    something below them is new. A key present on both sides where either value
    is not a mapping counts as already translated and is dropped, whatever the
    values are.

    Args:
        source: The raw tree.
        reference: The already-translated tree, or None when there is none.

    Returns:
        A new tree with the source's key order.
    """
    if reference is None:
        return source

    diff: KeyTree = {}
    for key, value in source.items():
        if key not in reference:
            diff[key] = value
        elif isinstance(value, dict) and isinstance(reference[key], dict):
            nested_diff = diff_nested_tree(value, reference[key])
            if nested_diff:
                diff[key] = nested_diff
    return diff


def count_leaves(tree: KeyTree) -> int:
    """Count the non-mapping values at any depth of ``tree``."""
    count = 0
    for value in tree.values():
        if isinstance(value, dict):
            count += count_leaves(value)
        else:
            count += 1
    return count
