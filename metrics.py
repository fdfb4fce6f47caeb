"""
Which metric types a goal may track, keyed by goal category.
"""
from typing import Any, Iterable, List, Mapping, Union

from errors import UnknownCategoryError
from schemas import Metric

METRIC_TYPES = {
    "Learning Language": ("Hours to Dedicate", "Key Concepts"),
    "Project Development": ("Milestones", "Code Commits"),
    "Algorithm Mastery": ("Core Algorithms", "Weekly Problem Goals"),
}

MetricLike = Union[Metric, Mapping[str, Any]]


def allowed_metric_types(category: str) -> tuple:
    try:
        return METRIC_TYPES[category]
    except KeyError:
        raise UnknownCategoryError(category) from None


def _metric_type(metric: MetricLike) -> Any:
    if isinstance(metric, Metric):
        return metric.type
    return metric.get("type")


def filter_metrics(category: str, metrics: Iterable[MetricLike]) -> List[MetricLike]:
    """
    Keep only the metrics whose type is allowed for ``category``.

    Order is preserved and disallowed entries are dropped silently.
    Raises UnknownCategoryError for a category with no whitelist.
    """
    allowed = allowed_metric_types(category)
    return [m for m in metrics if _metric_type(m) in allowed]
