# score.py — Live preview scoring, layer breakdown & metric benchmarks
from typing import Any, Dict, List, Optional

from weights import (
    LAYER_KEYS, LAYER_LABELS, METRIC_KEYS, WeightSet,
    round_half_up, validate_weight_set,
)

# Raw layer scores of a hypothetical sample property (preview only, not real data)
SAMPLE_LAYER_SCORES = {"layer1": 72, "layer2": 65, "layer3": 81}

# Secondary bias so the preview reacts to metric sliders too
METRIC_BIAS = {"economic_occupancy": 0.02, "opex_ratio": -0.01, "supply_pipeline": 0.01}

STRONG_SCORE = 70
MODERATE_SCORE = 40

def score_breakdown(layer_weights: WeightSet, sample: Dict[str, float] = SAMPLE_LAYER_SCORES) -> List[Dict[str, Any]]:
    validate_weight_set(layer_weights, LAYER_KEYS)
    rows = []
    for k in LAYER_KEYS:
        raw = sample[k]
        contribution = raw * layer_weights[k] / 100
        rows.append({
            "key": k,
            "label": LAYER_LABELS[k],
            "raw_score": raw,
            "weight": layer_weights[k],
            "contribution": contribution,
            "display_contribution": round_half_up(contribution),
        })
    return rows

def weighted_total(layer_weights: WeightSet, sample: Dict[str, float] = SAMPLE_LAYER_SCORES) -> float:
    # single division keeps 30/20/50 at exactly 75.1
    validate_weight_set(layer_weights, LAYER_KEYS)
    return sum(sample[k] * layer_weights[k] for k in LAYER_KEYS) / 100

def metric_bias(metric_weights: WeightSet) -> float:
    validate_weight_set(metric_weights, METRIC_KEYS)
    return sum(metric_weights[k] * METRIC_BIAS[k] for k in METRIC_KEYS)

def compute_preview_score(layer_weights: WeightSet, metric_weights: WeightSet,
                          sample: Dict[str, float] = SAMPLE_LAYER_SCORES) -> int:
    """Sample-property score for the settings preview, 0..100.

    Not the authoritative deal score; that is computed by the scoring service.
    """
    total = weighted_total(layer_weights, sample) + metric_bias(metric_weights)
    return max(0, min(100, round_half_up(total)))

def score_band(score: float) -> str:
    if score >= STRONG_SCORE: return "strong"
    if score >= MODERATE_SCORE: return "moderate"
    return "weak"


# ---------- Metric benchmarks (layer 1) ----------
# Breakpoints min/low/mid/high/max map to 0/25/50/75/100 (inverted when lower is better).

BENCHMARKS = {
    "economic_occupancy": {"min": 70.0, "low": 80.0, "mid": 88.0, "high": 93.0, "max": 97.0, "higher_is_better": True},
    "opex_ratio":         {"min": 30.0, "low": 38.0, "mid": 45.0, "high": 52.0, "max": 65.0, "higher_is_better": False},
    "supply_pipeline":    {"min": 0.0,  "low": 2.0,  "mid": 5.0,  "high": 8.0,  "max": 15.0, "higher_is_better": False},
}

NEUTRAL_SCORE = 50.0

def metric_score(value: float, metric: str) -> float:
    bench = BENCHMARKS.get(metric)
    if bench is None:
        return NEUTRAL_SCORE
    points = [bench["min"], bench["low"], bench["mid"], bench["high"], bench["max"]]
    scores = [0.0, 25.0, 50.0, 75.0, 100.0]
    if not bench["higher_is_better"]:
        scores = scores[::-1]

    if value <= points[0]: return scores[0]
    if value >= points[-1]: return scores[-1]
    for i in range(len(points) - 1):
        lo, hi = points[i], points[i + 1]
        if lo <= value <= hi:
            t = (value - lo) / (hi - lo)
            return scores[i] + t * (scores[i + 1] - scores[i])
    return NEUTRAL_SCORE

def fundamentals_score(values: Dict[str, Optional[float]], metric_weights: WeightSet) -> Optional[float]:
    """Layer-1 score from observed metrics; missing metrics drop out and the rest are renormalized."""
    validate_weight_set(metric_weights, METRIC_KEYS)
    used = {k: metric_score(values[k], k) for k in METRIC_KEYS if values.get(k) is not None}
    weight_sum = sum(metric_weights[k] for k in used)
    if not used or weight_sum == 0:
        return None
    return round(sum(s * metric_weights[k] for k, s in used.items()) / weight_sum, 1)
