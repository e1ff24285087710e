"""
Equality-based label selector matching.
"""
from typing import Dict, List


def matches(selector: Dict[str, str], labels: Dict[str, str]) -> bool:
    """
    Checks whether every selector pair is present in the labels.

    An empty selector matches nothing, as it does for services.
    """
    if not selector:
        return False
    return all(labels.get(k) == v for k, v in selector.items())


def unsatisfied(selector: Dict[str, str], labels: Dict[str, str]) -> List[str]:
    """
    Lists the selector keys the labels do not satisfy.
    """
    return [k for k, v in selector.items() if labels.get(k) != v]
