# store.py — In-memory weight state for one settings session
from typing import Dict, Optional

from weights import (
    LAYER_KEYS, METRIC_KEYS, PRESETS, WeightSet,
    default_layer_weights, default_metric_weights, join_weights,
    match_preset, preset_weights, redistribute, split_weights, validate_weight_set,
)


class WeightStore:
    """Layer and metric weights plus the last saved snapshot.

    Every mutation builds the full new group first and swaps it in only once
    it validates, so readers never see a group that does not sum to 100.
    """

    def __init__(self, presets: Optional[Dict[str, Dict[str, float]]] = None):
        self.presets = dict(PRESETS if presets is None else presets)
        self.layers: WeightSet = default_layer_weights()
        self.metrics: WeightSet = default_metric_weights()
        self.saved: Optional[Dict[str, float]] = None
        self.active_preset: Optional[str] = None

    @property
    def is_custom(self) -> bool:
        return self.active_preset is None

    def _rematch(self) -> None:
        self.active_preset = match_preset(self.layers, self.metrics, self.presets)

    def set_presets(self, presets: Dict[str, Dict[str, float]]) -> None:
        self.presets = dict(presets)
        self._rematch()

    def load(self, initial: Optional[Dict[str, float]] = None) -> None:
        if initial is None:
            self.layers, self.metrics = default_layer_weights(), default_metric_weights()
            self.saved = None
            self._rematch()
            return
        layers, metrics = split_weights(initial)
        validate_weight_set(layers, LAYER_KEYS)
        validate_weight_set(metrics, METRIC_KEYS)
        self.layers, self.metrics = layers, metrics
        self.saved = dict(initial)
        if initial.get("preset_name"):
            self.active_preset = initial["preset_name"]
        else:
            self._rematch()

    def set_layer_weight(self, key: str, value: int) -> WeightSet:
        self.layers = redistribute(self.layers, key, value, LAYER_KEYS)
        self._rematch()
        return self.layers

    def set_metric_weight(self, key: str, value: int) -> WeightSet:
        self.metrics = redistribute(self.metrics, key, value, METRIC_KEYS)
        self._rematch()
        return self.metrics

    def apply_preset(self, name: str, applied: Optional[Dict[str, float]] = None) -> None:
        """Overwrite both groups from a preset; ``applied`` is the server's copy when there is one."""
        if applied is not None:
            layers, metrics = split_weights(applied)
            validate_weight_set(layers, LAYER_KEYS)
            validate_weight_set(metrics, METRIC_KEYS)
        else:
            layers, metrics = preset_weights(name, self.presets)
        self.layers, self.metrics = layers, metrics
        self.saved = dict(applied) if applied is not None else dict(join_weights(layers, metrics), preset_name=name)
        self.active_preset = name

    def reset(self) -> None:
        self.layers, self.metrics = default_layer_weights(), default_metric_weights()
        self.active_preset = None

    def has_changes(self) -> bool:
        if self.saved is None:
            return False
        layers, metrics = split_weights(self.saved)
        return layers != self.layers or metrics != self.metrics

    def payload(self) -> Dict[str, float]:
        return join_weights(self.layers, self.metrics)

    def mark_saved(self, record: Dict[str, float]) -> None:
        self.saved = dict(record)
        if record.get("preset_name"):
            self.active_preset = record["preset_name"]
