"""
Field level differences between two JSON-like documents.
"""
from typing import Any, List


def diff_fields(old: Any, new: Any, prefix: str = "") -> List[str]:
    """
    Returns the dotted paths of fields that differ between old and new.

    Lists are compared element by element; a length change reports the
    list itself.

    :param old: Previous value.
    :param new: Current value.
    :param prefix: Path of the values being compared.
    :return: Sorted list of changed paths.
    """
    if isinstance(old, dict) and isinstance(new, dict):
        changed = []
        for key in sorted(set(old) | set(new), key=str):
            path = f"{prefix}.{key}" if prefix else str(key)
            if key not in old or key not in new:
                changed.append(path)
            else:
                changed.extend(diff_fields(old[key], new[key], path))
        return changed

    if isinstance(old, list) and isinstance(new, list) and len(old) == len(new):
        changed = []
        for i, (a, b) in enumerate(zip(old, new)):
            changed.extend(diff_fields(a, b, f"{prefix}[{i}]"))
        return changed

    return [] if old == new else [prefix]
