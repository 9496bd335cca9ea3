"""Tests for the in-memory weight store."""

import pytest

from store import WeightStore
from weights import DEFAULT_LAYER_WEIGHTS, DEFAULT_METRIC_WEIGHTS, PRESETS, WeightError, join_weights


@pytest.fixture
def store():
    s = WeightStore()
    s.load(None)
    return s


def saved_record(layers, metrics, preset_name=None):
    record = join_weights(layers, metrics)
    record["preset_name"] = preset_name
    return record


class TestLoad:
    def test_defaults_without_snapshot(self, store):
        assert store.layers == DEFAULT_LAYER_WEIGHTS
        assert store.metrics == DEFAULT_METRIC_WEIGHTS
        assert store.saved is None
        assert store.is_custom
        assert not store.has_changes()

    def test_load_saved_record(self):
        s = WeightStore()
        s.load(saved_record({"layer1": 40, "layer2": 40, "layer3": 20}, dict(DEFAULT_METRIC_WEIGHTS)))
        assert s.layers == {"layer1": 40, "layer2": 40, "layer3": 20}
        assert not s.has_changes()
        assert s.active_preset is None

    def test_load_takes_preset_name_from_record(self):
        s = WeightStore()
        s.load(saved_record(dict(DEFAULT_LAYER_WEIGHTS), dict(DEFAULT_METRIC_WEIGHTS), "core"))
        assert s.active_preset == "core"

    def test_load_matches_preset_when_record_has_none(self):
        s = WeightStore()
        s.load(dict(PRESETS["cash_flow"]))
        assert s.active_preset == "cash_flow"
        assert not s.is_custom

    def test_load_rejects_bad_record(self):
        s = WeightStore()
        bad = saved_record({"layer1": 40, "layer2": 40, "layer3": 40}, dict(DEFAULT_METRIC_WEIGHTS))
        with pytest.raises(WeightError):
            s.load(bad)
        assert s.layers == DEFAULT_LAYER_WEIGHTS


class TestMutations:
    def test_set_layer_weight_redistributes(self, store):
        assert store.set_layer_weight("layer1", 60) == {"layer1": 60, "layer2": 11, "layer3": 29}
        assert store.metrics == DEFAULT_METRIC_WEIGHTS

    def test_set_metric_weight_redistributes(self, store):
        store.set_metric_weight("economic_occupancy", 45)
        assert store.metrics == {"economic_occupancy": 45, "opex_ratio": 25, "supply_pipeline": 30}
        assert sum(store.metrics.values()) == 100

    def test_sliding_into_a_preset_activates_it(self, store):
        store.load(saved_record({"layer1": 42, "layer2": 30, "layer3": 28},
                                {"economic_occupancy": 40, "opex_ratio": 25, "supply_pipeline": 35}))
        assert store.is_custom
        # 60 split 42:30 -> 35/25, exactly the core preset
        store.set_layer_weight("layer3", 40)
        assert store.active_preset == "core"

    def test_sliding_back_is_not_an_exact_undo(self, store):
        store.load(dict(PRESETS["core"]))
        store.set_layer_weight("layer1", 36)
        assert store.is_custom
        store.set_layer_weight("layer1", 35)
        # 36/24/40 back to 35 puts the spare point on the last key
        assert store.layers == {"layer1": 35, "layer2": 24, "layer3": 41}
        assert store.is_custom

    def test_bad_key_leaves_state_alone(self, store):
        with pytest.raises(WeightError):
            store.set_layer_weight("economic_occupancy", 10)
        assert store.layers == DEFAULT_LAYER_WEIGHTS

    def test_has_changes_tracks_snapshot(self):
        s = WeightStore()
        s.load(saved_record(dict(DEFAULT_LAYER_WEIGHTS), dict(DEFAULT_METRIC_WEIGHTS)))
        s.set_layer_weight("layer2", 25)
        assert s.has_changes()
        s.set_layer_weight("layer2", 20)
        # 28/25/47 -> layer2 back to 20: 80 split 28:47 -> 29/51, not the saved 30/50
        assert s.layers == {"layer1": 29, "layer2": 20, "layer3": 51}
        assert s.has_changes()


class TestPresets:
    def test_apply_preset_overwrites_and_clears_changes(self):
        s = WeightStore()
        s.load(saved_record(dict(DEFAULT_LAYER_WEIGHTS), dict(DEFAULT_METRIC_WEIGHTS)))
        s.set_layer_weight("layer1", 80)
        assert s.has_changes()
        s.apply_preset("value_add")
        assert s.layers == {"layer1": 25, "layer2": 15, "layer3": 60}
        assert s.metrics == {"economic_occupancy": 25, "opex_ratio": 40, "supply_pipeline": 35}
        assert s.active_preset == "value_add"
        assert not s.has_changes()

    def test_apply_preset_uses_server_copy(self, store):
        applied = saved_record({"layer1": 20, "layer2": 15, "layer3": 65},
                               {"economic_occupancy": 20, "opex_ratio": 35, "supply_pipeline": 45},
                               "opportunistic")
        store.apply_preset("opportunistic", applied)
        assert store.layers["layer3"] == 65
        assert store.saved == applied
        assert not store.has_changes()

    def test_apply_unknown_preset(self, store):
        with pytest.raises(WeightError):
            store.apply_preset("trophy")
        assert store.layers == DEFAULT_LAYER_WEIGHTS

    def test_set_presets_rematches(self, store):
        assert store.is_custom
        store.set_presets({"house": saved_record(dict(DEFAULT_LAYER_WEIGHTS), dict(DEFAULT_METRIC_WEIGHTS))})
        assert store.active_preset == "house"


class TestSaveAndReset:
    def test_payload_is_full_fraction_record(self, store):
        payload = store.payload()
        assert set(payload) == {
            "layer1_weight", "layer2_weight", "layer3_weight",
            "economic_occupancy_weight", "opex_ratio_weight", "supply_pipeline_weight",
        }
        assert payload["layer3_weight"] == 0.5

    def test_mark_saved_clears_changes(self, store):
        store.load(saved_record(dict(DEFAULT_LAYER_WEIGHTS), dict(DEFAULT_METRIC_WEIGHTS)))
        store.set_metric_weight("opex_ratio", 10)
        assert store.has_changes()
        store.mark_saved(store.payload())
        assert not store.has_changes()

    def test_mark_saved_adopts_server_preset(self, store):
        store.mark_saved(dict(store.payload(), preset_name="core"))
        assert store.active_preset == "core"

    def test_reset_restores_defaults(self):
        s = WeightStore()
        s.load(dict(PRESETS["core"]))
        s.reset()
        assert s.layers == DEFAULT_LAYER_WEIGHTS
        assert s.metrics == DEFAULT_METRIC_WEIGHTS
        assert s.is_custom
        assert s.has_changes()
