"""
Health score of an integrity report.

Pure function, no database access.
"""
from typing import Iterable, Tuple

# (scope, is_critical) -> penalty per mismatch
PENALTIES = {
    ('global', True): 30,
    ('category', True): 10,
    ('subcategory', True): 5,
    ('daily', True): 5,
    ('global', False): 10,
    ('category', False): 3,
    ('subcategory', False): 2,
    ('daily', False): 2,
}
DEFAULT_PENALTY = 5


def compute_health_score(mismatches: Iterable[Tuple[str, bool]]) -> int:
    """
    100 minus the summed penalties, floored at 0.

        >>> compute_health_score([])
        100
        >>> compute_health_score([('global', True), ('subcategory', False)])
        68
    """
    penalty = sum(PENALTIES.get((scope, bool(critical)), DEFAULT_PENALTY) for scope, critical in mismatches)
    return max(0, 100 - penalty)
