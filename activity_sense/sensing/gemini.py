"""
Remote activity classification through the Gemini ``generateContent`` API.

The backend renders the feature vector and the previous activity into a
prompt, asks for a JSON response matching a fixed schema, and validates
the result into an ``ActivityLabel``.  The stability-bias instruction in
the system prompt is part of the backend contract.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx

from activity_sense.sensing.classifier import (
    ActivityLabel,
    ClassificationError,
    ClassificationRequest,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

SYSTEM_INSTRUCTION = """
You are an advanced Human Activity Recognition (HAR) engine.
Your task is to analyze aggregated accelerometer and gyroscope feature data from a smartphone and predict the user's current physical activity.

The input will be statistical features calculated from a 5-second sliding window of sensor data:
- acc_{axis}_mean: Average acceleration in m/s^2.
- acc_{axis}_std: Standard deviation of acceleration (indicates intensity/variance).
- gyro_{axis}_mean: Average rotation rate in deg/s.
- gyro_{axis}_std: Standard deviation of rotation rate.

DATA INTERPRETATION:
- Accelerometer: Measures linear forces (Gravity + Motion).
- Gyroscope: Measures rate of rotation.
  - High Gyro Std Dev = Rapid turning/twisting (e.g., Sports, checking phone frantically).
  - Low Gyro Std Dev + High Accel Y = Running straight.
  - Low Accel + Low Gyro = Stationary (Sitting/Standing).

CRITICAL INSTRUCTION FOR STABILITY:
Human activities have high temporal consistency. People do not switch instantly between "Sitting" and "Running" every second.
- If the 'Previous Activity' is provided and the new sensor data is ambiguous or similar to the previous state, bias your prediction to maintain the 'Previous Activity'.
- Only switch the activity if the sensor data pattern strongly and clearly indicates a change (e.g., a massive spike in variance indicating a transition from Standing to Running).

Return a JSON object with the activity name, a confidence score (0-100), a relevant emoji, and a brief one-sentence reasoning.
""".strip()

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "activity": {
            "type": "STRING",
            "description": "The predicted activity (e.g., Walking, Running, Sitting, Standing, Jumping, Phone Usage)",
        },
        "confidence": {
            "type": "NUMBER",
            "description": "Confidence score between 0 and 100",
        },
        "emoji": {
            "type": "STRING",
            "description": "A single emoji representing the activity",
        },
        "reasoning": {
            "type": "STRING",
            "description": "Brief explanation of why this activity was chosen, referencing the specific sensor patterns.",
        },
    },
    "required": ["activity", "confidence", "emoji", "reasoning"],
}


def build_prompt(request: ClassificationRequest) -> str:
    """Render the per-tick user prompt."""
    f = request.features
    return (
        "Context:\n"
        f"Previous Activity: {request.context_label}\n"
        "\n"
        "Current Sensor Features (Last 5 Seconds):\n"
        "-- Accelerometer (m/s^2) --\n"
        f"X: Mean {f.acc_x_mean:.2f}, Std {f.acc_x_std:.2f}\n"
        f"Y: Mean {f.acc_y_mean:.2f}, Std {f.acc_y_std:.2f}\n"
        f"Z: Mean {f.acc_z_mean:.2f}, Std {f.acc_z_std:.2f}\n"
        "\n"
        "-- Gyroscope (deg/s) --\n"
        f"Alpha (Z-axis/Yaw):   Mean {f.gyro_alpha_mean:.2f}, Std {f.gyro_alpha_std:.2f}\n"
        f"Beta (X-axis/Pitch):  Mean {f.gyro_beta_mean:.2f}, Std {f.gyro_beta_std:.2f}\n"
        f"Gamma (Y-axis/Roll):  Mean {f.gyro_gamma_mean:.2f}, Std {f.gyro_gamma_std:.2f}\n"
    )


class GeminiClassifier:
    """
    Classification backend backed by a hosted Gemini model.

    Parameters
    ----------
    api_key : str or None
        API key; a missing key makes every ``classify`` call fail.
    model : str
        Model name (default ``gemini-2.5-flash``).
    base_url : str
        API root, without trailing slash.
    timeout : float
        Per-request HTTP timeout in seconds.
    client : httpx.AsyncClient, optional
        Client to use; one is created lazily when omitted.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def model(self) -> str:
        return self._model

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/models/{self._model}:generateContent"

    def build_payload(self, request: ClassificationRequest) -> Dict[str, Any]:
        return {
            "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
            "contents": [{"role": "user", "parts": [{"text": build_prompt(request)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    async def classify(self, request: ClassificationRequest) -> ActivityLabel:
        if not self._api_key:
            raise ClassificationError("API Key is missing")

        client = self._get_client()
        try:
            response = await client.post(
                self.endpoint,
                json=self.build_payload(request),
                headers={"x-goog-api-key": self._api_key},
                timeout=self._timeout,
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as exc:
            raise ClassificationError(f"Gemini request failed: {exc}") from exc
        except ValueError as exc:
            raise ClassificationError("Gemini returned a non-JSON body") from exc

        text = extract_text(body)
        if not text:
            raise ClassificationError("Empty response from AI service")

        try:
            result = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ClassificationError(f"Model output is not valid JSON: {text[:80]!r}") from exc

        label = ActivityLabel.from_response(result)
        logger.debug(
            "Gemini classified %s (%.0f%%), previous=%s",
            label.activity,
            label.confidence,
            request.previous_activity,
        )
        return label

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    def __repr__(self) -> str:
        return f"GeminiClassifier(model={self._model!r})"


def extract_text(body: Any) -> Optional[str]:
    """Concatenate the text parts of the first candidate, if any."""
    if not isinstance(body, dict):
        return None
    candidates = body.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return None
    content = candidates[0].get("content") or {}
    parts = content.get("parts") or []
    text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
    return text or None
