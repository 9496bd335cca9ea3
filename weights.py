# weights.py — Layer/metric weight sets, slider redistribution & preset matching
import math
from typing import Dict, Optional, Sequence, Tuple

WeightSet = Dict[str, int]

LAYER_KEYS = (
    "layer1",  # Property Fundamentals
    "layer2",  # Market Intelligence
    "layer3",  # Deal Comp Analysis
)

METRIC_KEYS = (
    "economic_occupancy",  # layer 1: economic occupancy
    "opex_ratio",          # layer 1: operating expense ratio
    "supply_pipeline",     # layer 1: supply pipeline pressure
)

LAYER_LABELS = {
    "layer1": "Property Fundamentals",
    "layer2": "Market Intelligence",
    "layer3": "Deal Comp Analysis",
}

METRIC_LABELS = {
    "economic_occupancy": "Economic Occupancy",
    "opex_ratio": "OpEx Ratio",
    "supply_pipeline": "Supply Pipeline Pressure",
}

DEFAULT_LAYER_WEIGHTS = {"layer1": 30, "layer2": 20, "layer3": 50}
DEFAULT_METRIC_WEIGHTS = {"economic_occupancy": 35, "opex_ratio": 30, "supply_pipeline": 35}

TOTAL = 100


class WeightError(ValueError):
    """Raised when a weight set, key or value breaks the 0..100 / sum-100 contract."""


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))

def default_layer_weights() -> WeightSet:
    return dict(DEFAULT_LAYER_WEIGHTS)

def default_metric_weights() -> WeightSet:
    return dict(DEFAULT_METRIC_WEIGHTS)

def clamp_weight(value: float) -> int:
    """Slider-side clamp: round to a whole percent and pin to 0..100."""
    value = float(value)
    if not math.isfinite(value):
        raise WeightError(f"weight must be a finite number, got {value!r}")
    return max(0, min(TOTAL, round_half_up(value)))

def _check_value(key: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise WeightError(f"weight for {key!r} must be an int, got {value!r}")
    if value < 0 or value > TOTAL:
        raise WeightError(f"weight for {key!r} out of range 0..{TOTAL}: {value}")

def validate_weight_set(weights: WeightSet, keys: Sequence[str]) -> WeightSet:
    if set(weights) != set(keys):
        raise WeightError(f"expected keys {sorted(keys)}, got {sorted(weights)}")
    for k in keys:
        _check_value(k, weights[k])
    total = sum(weights[k] for k in keys)
    if total != TOTAL:
        raise WeightError(f"weights must sum to {TOTAL}, got {total}")
    return weights


# ---------- Redistribution ----------

def redistribute(current: WeightSet, changed_key: str, new_value: int,
                 keys: Optional[Sequence[str]] = None) -> WeightSet:
    """Move one slider and rebalance the rest of its group back to 100.

    The untouched keys keep their relative proportions. Shares are floored
    and the last untouched key in ``keys`` order takes the rounding
    remainder, so the result always sums to exactly 100. When every other
    key is at zero the remainder is split evenly instead.

    ``new_value`` must already be clamped by the caller; nothing is clamped here.
    """
    keys = tuple(keys) if keys is not None else tuple(current)
    if changed_key not in keys:
        raise WeightError(f"unknown weight key {changed_key!r}; expected one of {list(keys)}")
    _check_value(changed_key, new_value)
    validate_weight_set(current, keys)

    result = {k: current[k] for k in keys}
    if new_value == current[changed_key]:
        return result

    result[changed_key] = new_value
    others = [k for k in keys if k != changed_key]
    other_sum = sum(current[k] for k in others)
    remaining = TOTAL - new_value

    if other_sum == 0:
        share = remaining // len(others)
        for k in others[:-1]:
            result[k] = share
    else:
        for k in others[:-1]:
            result[k] = remaining * current[k] // other_sum
    # last key absorbs whatever keeps the group at exactly 100
    result[others[-1]] = remaining - sum(result[k] for k in others[:-1])
    return result


# ---------- Presets ----------
# Stored the way the scoring service serves them: fractions keyed by wire field.

LAYER_FIELDS = {k: f"{k}_weight" for k in LAYER_KEYS}
METRIC_FIELDS = {k: f"{k}_weight" for k in METRIC_KEYS}

PRESETS: Dict[str, Dict[str, float]] = {
    "value_add": {
        "economic_occupancy_weight": 0.25, "opex_ratio_weight": 0.40, "supply_pipeline_weight": 0.35,
        "layer1_weight": 0.25, "layer2_weight": 0.15, "layer3_weight": 0.60,
    },
    "cash_flow": {
        "economic_occupancy_weight": 0.45, "opex_ratio_weight": 0.30, "supply_pipeline_weight": 0.25,
        "layer1_weight": 0.40, "layer2_weight": 0.25, "layer3_weight": 0.35,
    },
    "core": {
        "economic_occupancy_weight": 0.40, "opex_ratio_weight": 0.25, "supply_pipeline_weight": 0.35,
        "layer1_weight": 0.35, "layer2_weight": 0.25, "layer3_weight": 0.40,
    },
    "opportunistic": {
        "economic_occupancy_weight": 0.20, "opex_ratio_weight": 0.35, "supply_pipeline_weight": 0.45,
        "layer1_weight": 0.20, "layer2_weight": 0.15, "layer3_weight": 0.65,
    },
}

PRESET_INFO = {
    "value_add":     ("Value-Add", "Maximize upside through renovations & repositioning"),
    "cash_flow":     ("Cash Flow", "Prioritize stable, income-producing properties"),
    "core":          ("Core", "Low-risk, stabilized assets in prime locations"),
    "opportunistic": ("Opportunistic", "High-risk, high-return distressed & development deals"),
}

def preset_label(name: str) -> str:
    return PRESET_INFO.get(name, (name,))[0]

def to_percentages(record: Dict[str, float], fields: Dict[str, str]) -> WeightSet:
    return {k: round_half_up(float(record[f]) * 100) for k, f in fields.items()}

def to_fractions(weights: WeightSet, fields: Dict[str, str]) -> Dict[str, float]:
    return {fields[k]: weights[k] / 100 for k in fields}

def split_weights(record: Dict[str, float]) -> Tuple[WeightSet, WeightSet]:
    """Six-field fraction record -> (layers, metrics) percentage sets."""
    try:
        return to_percentages(record, LAYER_FIELDS), to_percentages(record, METRIC_FIELDS)
    except KeyError as e:
        raise WeightError(f"weight record missing field {e.args[0]!r}") from e

def join_weights(layers: WeightSet, metrics: WeightSet) -> Dict[str, float]:
    out = to_fractions(layers, LAYER_FIELDS)
    out.update(to_fractions(metrics, METRIC_FIELDS))
    return out

def _fields_match(record: Dict[str, float], weights: WeightSet, fields: Dict[str, str]) -> bool:
    return all(record.get(f) == weights[k] / 100 for k, f in fields.items())

def match_preset(layers: WeightSet, metrics: WeightSet,
                 presets: Optional[Dict[str, Dict[str, float]]]) -> Optional[str]:
    """First preset (insertion order) whose fractions equal the current weights exactly; None = custom."""
    if not presets:
        return None
    for name, values in presets.items():
        if _fields_match(values, layers, LAYER_FIELDS) and _fields_match(values, metrics, METRIC_FIELDS):
            return name
    return None

def preset_weights(name: str, presets: Optional[Dict[str, Dict[str, float]]] = None) -> Tuple[WeightSet, WeightSet]:
    presets = PRESETS if presets is None else presets
    if name not in presets:
        raise WeightError(f"unknown preset {name!r}; available: {', '.join(presets)}")
    layers, metrics = split_weights(presets[name])
    return validate_weight_set(layers, LAYER_KEYS), validate_weight_set(metrics, METRIC_KEYS)
