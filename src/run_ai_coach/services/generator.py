"""Feedback text generator backed by the OpenAI Responses API.

Implements the FeedbackGenerator contract:

    async (Aggregates, RawSample | None, list[Feedback]) -> GeneratedFeedback

Each call sends the current aggregates and the latest raw sample as JSON
input. The id of the previous response (taken from the last history entry) is
passed as ``previous_response_id`` so the model keeps the context of the run.
"""

import json
from typing import Any

import httpx
import structlog

from run_ai_coach.core.config import Settings, settings
from run_ai_coach.core.exceptions import ConfigurationError, FeedbackGenerationError
from run_ai_coach.schemas.feedback import Feedback, GeneratedFeedback
from run_ai_coach.schemas.metrics import Aggregates, RawSample

logger = structlog.get_logger()

COACH_INSTRUCTIONS = (
    "You are an experienced running coach giving real-time guidance during a run. "
    "Speak directly to the runner in two or three short sentences. Focus on one "
    "aspect at a time (pace, heart rate, elevation, cadence or power), give a "
    "concrete adjustment and keep the tone encouraging. The input is JSON with the "
    "current aggregates and the latest raw sensor sample."
)


def build_input(current: Aggregates, raw_metrics: RawSample | None) -> str:
    """Serialize the metrics sent as model input."""
    payload: dict[str, Any] = {"current": current.model_dump()}
    if raw_metrics is not None:
        payload["raw_metrics"] = raw_metrics.model_dump(mode="json")
    return json.dumps(payload)


def extract_text(body: dict[str, Any]) -> str:
    """Concatenate every ``output_text`` item of a Responses API body."""
    parts: list[str] = []
    for output in body.get("output") or []:
        content = output.get("content") if isinstance(output, dict) else None
        if not isinstance(content, list):
            continue
        texts = [
            item["text"]
            for item in content
            if isinstance(item, dict)
            and item.get("type") == "output_text"
            and isinstance(item.get("text"), str)
        ]
        if texts:
            parts.append(" ".join(texts))
    return " ".join(parts)


class OpenAIFeedbackGenerator:
    """Generate spoken coaching feedback with the OpenAI Responses API."""

    def __init__(
        self,
        api_key: str | None = None,
        config: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize generator.

        Args:
            api_key: OpenAI API key (defaults to settings.openai_api_key)
            config: Settings to read model and limits from
            client: Shared HTTP client; one is created per call when omitted

        Raises:
            ConfigurationError: If no API key is available
        """
        self.config = config or settings
        self.api_key = api_key or self.config.openai_api_key
        if not self.api_key:
            raise ConfigurationError("OPENAI_API_KEY must be set to generate feedback")

        self.client = client
        self.url = f"{self.config.openai_base_url.rstrip('/')}/responses"
        self.logger = logger.bind(component="openai_feedback_generator")

    def build_request_body(
        self,
        current: Aggregates,
        raw_metrics: RawSample | None,
        history: list[Feedback],
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.config.openai_model,
            "instructions": COACH_INSTRUCTIONS,
            "input": build_input(current, raw_metrics),
            "max_output_tokens": self.config.openai_max_output_tokens,
        }

        previous_response_id = history[-1].response_id if history else None
        if previous_response_id:
            body["previous_response_id"] = previous_response_id
        return body

    async def __call__(
        self,
        current: Aggregates,
        raw_metrics: RawSample | None,
        history: list[Feedback],
    ) -> GeneratedFeedback:
        """Request feedback text for the current state of the run.

        Raises:
            FeedbackGenerationError: On transport errors, non-200 responses,
                malformed bodies or empty text
        """
        body = self.build_request_body(current, raw_metrics, history)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            if self.client is not None:
                response = await self.client.post(
                    self.url,
                    json=body,
                    headers=headers,
                    timeout=self.config.openai_timeout_seconds,
                )
            else:
                async with httpx.AsyncClient(
                    timeout=self.config.openai_timeout_seconds
                ) as client:
                    response = await client.post(self.url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise FeedbackGenerationError(f"OpenAI request failed: {e}") from e

        if response.status_code != 200:
            self.logger.error(
                "OpenAI API error",
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise FeedbackGenerationError(
                f"OpenAI API error {response.status_code}",
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise FeedbackGenerationError("Invalid response format") from e

        if not isinstance(data, dict) or not isinstance(data.get("id"), str):
            raise FeedbackGenerationError("Invalid response format")

        text = extract_text(data)
        if not text:
            raise FeedbackGenerationError("No text content in response")

        self.logger.debug("Generated feedback", response_id=data["id"], length=len(text))
        return GeneratedFeedback(text=text, response_id=data["id"])
