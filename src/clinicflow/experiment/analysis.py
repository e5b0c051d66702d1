"""Confidence intervals and tabular summaries over replications."""

from typing import Dict, List

import numpy as np
import pandas as pd
from scipy import stats


def compute_ci(values: List[float], confidence: float = 0.95) -> Dict:
    """Compute a t-based confidence interval for a metric.

    Args:
        values: Metric values from replications.
        confidence: Confidence level in (0, 1).

    Returns:
        Dictionary with mean, std, se, ci_lower, ci_upper, ci_half_width, n.
    """
    if not 0 < confidence < 1:
        raise ValueError(f"confidence must be within (0, 1), got {confidence}")

    n = len(values)
    if n < 2:
        mean = float(values[0]) if n == 1 else 0.0
        return {
            "mean": mean,
            "std": 0.0,
            "se": 0.0,
            "ci_lower": mean,
            "ci_upper": mean,
            "ci_half_width": 0.0,
            "n": n,
        }

    arr = np.array(values, dtype=float)
    mean = float(np.mean(arr))
    std = float(np.std(arr, ddof=1))
    se = float(stats.sem(arr))

    t_crit = stats.t.ppf((1 + confidence) / 2, df=n - 1)
    half_width = float(t_crit * se)

    return {
        "mean": mean,
        "std": std,
        "se": se,
        "ci_lower": mean - half_width,
        "ci_upper": mean + half_width,
        "ci_half_width": half_width,
        "n": n,
    }


def summarise_replications(
    results: Dict[str, List[float]], confidence: float = 0.95
) -> pd.DataFrame:
    """One row per metric with its confidence interval."""
    rows = []
    for metric, values in results.items():
        ci = compute_ci(values, confidence)
        rows.append({"metric": metric, **ci})
    return pd.DataFrame(rows).set_index("metric") if rows else pd.DataFrame()
