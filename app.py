# app.py — Deal Score weight settings API
# FastAPI service backing the scoring settings panel; persistence via the scoring service
# ----------------------------------------------------------

import os
import traceback
from typing import Dict, List, Optional

from dotenv import load_dotenv
load_dotenv()

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from client import ScoringAPIError, ScoringClient
from score import compute_preview_score, score_band, score_breakdown
from store import WeightStore
from weights import (
    PRESET_INFO, PRESETS, WeightError, clamp_weight, preset_label, preset_weights, validate_weight_set,
    LAYER_KEYS, METRIC_KEYS,
)

# -------------------------
# Config / constants
# -------------------------
SCORING_API_URL = os.getenv("SCORING_API_URL", "http://localhost:8000/api")
SCORING_API_TOKEN = os.getenv("SCORING_API_TOKEN")
SCORING_API_TIMEOUT = float(os.getenv("SCORING_API_TIMEOUT", "10"))

CLIENT = ScoringClient(SCORING_API_URL, token=SCORING_API_TOKEN, timeout=SCORING_API_TIMEOUT)

# One store per user; owned by that user's settings session only
SESSIONS: Dict[str, WeightStore] = {}

def get_client() -> ScoringClient:
    return CLIENT

# -------------------------
# Schemas
# -------------------------
class LayerContribution(BaseModel):
    key: str
    label: str
    raw_score: float
    weight: int
    contribution: float
    display_contribution: int

class SettingsOut(BaseModel):
    layers: Dict[str, int]
    metrics: Dict[str, int]
    active_preset: Optional[str] = None
    active_preset_label: Optional[str] = None
    is_custom: bool
    has_changes: bool
    preview_score: int
    band: str
    breakdown: List[LayerContribution] = Field(default_factory=list)

class WeightChange(BaseModel):
    key: str
    value: float = Field(allow_inf_nan=False)

class PresetRequest(BaseModel):
    preset_name: str

class PresetOut(BaseModel):
    name: str
    label: str
    description: str
    layers: Dict[str, int]
    metrics: Dict[str, int]
    preview_score: int

class PreviewRequest(BaseModel):
    layers: Dict[str, int]
    metrics: Dict[str, int]

class PreviewOut(BaseModel):
    preview_score: int
    band: str
    breakdown: List[LayerContribution] = Field(default_factory=list)

# -------------------------
# Session helpers
# -------------------------
def load_store(client: ScoringClient) -> WeightStore:
    store = WeightStore()
    try:
        presets = client.get_presets()
        saved = client.get_weights()
    except ScoringAPIError as e:
        # scoring service unavailable: fall back to defaults
        print("[SCORING API ERROR - load]", e)
        traceback.print_exc()
        store.load(None)
        return store
    store.set_presets(presets)
    try:
        store.load(saved.model_dump())
    except WeightError as e:
        print("[WEIGHTS INVALID - load]", e)
        store.load(None)
    return store

def get_store(user_id: str, client: ScoringClient) -> WeightStore:
    if user_id not in SESSIONS:
        SESSIONS[user_id] = load_store(client)
    return SESSIONS[user_id]

def settings_view(store: WeightStore) -> SettingsOut:
    score = compute_preview_score(store.layers, store.metrics)
    return SettingsOut(
        layers=dict(store.layers),
        metrics=dict(store.metrics),
        active_preset=store.active_preset,
        active_preset_label=preset_label(store.active_preset) if store.active_preset else None,
        is_custom=store.is_custom,
        has_changes=store.has_changes(),
        preview_score=score,
        band=score_band(score),
        breakdown=[LayerContribution(**row) for row in score_breakdown(store.layers)],
    )

# -------------------------
# FastAPI app
# -------------------------
app = FastAPI(title="Deal Score Weights", version="1.0.0")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_credentials=True,
                   allow_methods=["*"], allow_headers=["*"])

@app.get("/health")
def health():
    return {"ok": True}

@app.get("/presets", response_model=List[PresetOut])
def presets(client: ScoringClient = Depends(get_client)):
    # list what the scoring service will apply; built-in table only when it is unreachable
    try:
        table = client.get_presets()
    except ScoringAPIError as e:
        print("[SCORING API ERROR - presets]", e)
        traceback.print_exc()
        table = PRESETS
    out = []
    for name in table:
        try:
            layers, metrics = preset_weights(name, table)
        except WeightError as e:
            print("[PRESET INVALID]", name, e)
            continue
        label, description = PRESET_INFO.get(name, (name, ""))
        out.append(PresetOut(name=name, label=label, description=description,
                             layers=layers, metrics=metrics,
                             preview_score=compute_preview_score(layers, metrics)))
    return out

@app.post("/preview", response_model=PreviewOut)
def preview(req: PreviewRequest):
    try:
        validate_weight_set(req.layers, LAYER_KEYS)
        validate_weight_set(req.metrics, METRIC_KEYS)
    except WeightError as e:
        raise HTTPException(status_code=422, detail=str(e))
    score = compute_preview_score(req.layers, req.metrics)
    return PreviewOut(preview_score=score, band=score_band(score),
                      breakdown=[LayerContribution(**row) for row in score_breakdown(req.layers)])

@app.get("/settings/{user_id}", response_model=SettingsOut)
def settings(user_id: str, client: ScoringClient = Depends(get_client)):
    return settings_view(get_store(user_id, client))

@app.post("/settings/{user_id}/layers", response_model=SettingsOut)
def change_layer(user_id: str, req: WeightChange, client: ScoringClient = Depends(get_client)):
    store = get_store(user_id, client)
    try:
        store.set_layer_weight(req.key, clamp_weight(req.value))
    except WeightError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return settings_view(store)

@app.post("/settings/{user_id}/metrics", response_model=SettingsOut)
def change_metric(user_id: str, req: WeightChange, client: ScoringClient = Depends(get_client)):
    store = get_store(user_id, client)
    try:
        store.set_metric_weight(req.key, clamp_weight(req.value))
    except WeightError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return settings_view(store)

@app.post("/settings/{user_id}/preset", response_model=SettingsOut)
def apply_preset(user_id: str, req: PresetRequest, client: ScoringClient = Depends(get_client)):
    store = get_store(user_id, client)
    if req.preset_name not in store.presets:
        raise HTTPException(
            status_code=404,
            detail=f"Preset '{req.preset_name}' not found. Available: {', '.join(store.presets)}",
        )
    try:
        applied = client.apply_preset(req.preset_name)
        store.apply_preset(req.preset_name, applied.model_dump())
    except (ScoringAPIError, WeightError) as e:
        print("[SCORING API ERROR - apply]", e)
        traceback.print_exc()
        raise HTTPException(status_code=502, detail="Failed to apply preset")
    return settings_view(store)

@app.post("/settings/{user_id}/save", response_model=SettingsOut)
def save(user_id: str, client: ScoringClient = Depends(get_client)):
    store = get_store(user_id, client)
    try:
        updated = client.update_weights(store.payload())
    except ScoringAPIError as e:
        print("[SCORING API ERROR - save]", e)
        traceback.print_exc()
        raise HTTPException(status_code=502, detail="Failed to save weights")
    store.mark_saved(updated.model_dump())
    return settings_view(store)

@app.post("/settings/{user_id}/reset", response_model=SettingsOut)
def reset(user_id: str, client: ScoringClient = Depends(get_client)):
    store = get_store(user_id, client)
    store.reset()
    return settings_view(store)
