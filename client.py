# client.py — HTTP client for the remote scoring/persistence service
from typing import Any, Dict, Optional

import requests
from pydantic import BaseModel, ValidationError


class ScoringWeights(BaseModel):
    """Saved weights as the service stores them: fractions that sum to 1 per group."""
    economic_occupancy_weight: float
    opex_ratio_weight: float
    supply_pipeline_weight: float
    layer1_weight: float
    layer2_weight: float
    layer3_weight: float
    preset_name: Optional[str] = None


class ScoringAPIError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ScoringClient:
    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 10,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {"Content-Type": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, headers=self.headers, json=json, timeout=self.timeout)
            r.raise_for_status()
        except requests.HTTPError as e:
            code = e.response.status_code if e.response is not None else None
            raise ScoringAPIError(f"{method} {path} failed with HTTP {code}", status_code=code) from e
        except requests.RequestException as e:
            raise ScoringAPIError(f"{method} {path} failed: {e}") from e
        try:
            return r.json()
        except ValueError as e:
            raise ScoringAPIError(f"{method} {path} returned non-JSON body", status_code=r.status_code) from e

    def _weights(self, data: Any) -> ScoringWeights:
        try:
            return ScoringWeights.model_validate(data)
        except ValidationError as e:
            raise ScoringAPIError(f"unexpected weights payload: {e}") from e

    def get_weights(self) -> ScoringWeights:
        return self._weights(self._request("GET", "/scoring/weights"))

    def update_weights(self, weights: Dict[str, float]) -> ScoringWeights:
        return self._weights(self._request("PUT", "/scoring/weights", json=weights))

    def get_presets(self) -> Dict[str, Dict[str, float]]:
        data = self._request("GET", "/scoring/presets")
        if not isinstance(data, dict):
            raise ScoringAPIError("unexpected presets payload")
        # drop preset_name echoes so only the six weight fields remain
        return {name: self._weights(values).model_dump(exclude={"preset_name"}) for name, values in data.items()}

    def apply_preset(self, name: str) -> ScoringWeights:
        return self._weights(self._request("POST", f"/scoring/presets/{name}/apply"))
