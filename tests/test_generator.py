"""Tests for the OpenAI feedback text generator."""

import json

import httpx
import pytest

from run_ai_coach.core.config import Settings
from run_ai_coach.core.exceptions import ConfigurationError, FeedbackGenerationError
from run_ai_coach.schemas.feedback import Feedback
from run_ai_coach.schemas.metrics import Aggregates
from run_ai_coach.services.generator import OpenAIFeedbackGenerator, extract_text


def responses_body(*texts: str, response_id: str = "resp_123") -> dict:
    return {
        "id": response_id,
        "output": [
            {"type": "message", "content": [{"type": "output_text", "text": text}]}
            for text in texts
        ],
    }


def make_generator(handler, **settings_overrides) -> OpenAIFeedbackGenerator:
    config = Settings(openai_api_key="sk-test", **settings_overrides)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenAIFeedbackGenerator(config=config, client=client)


class TestExtractText:
    """Tests for Responses API text extraction."""

    def test_joins_output_text_items(self) -> None:
        """Test every output_text item is concatenated."""
        body = responses_body("Nice pace.", "Keep your cadence up.")
        assert extract_text(body) == "Nice pace. Keep your cadence up."

    def test_ignores_other_items(self) -> None:
        """Test non-text content is skipped."""
        body = {
            "output": [
                {"type": "reasoning", "summary": []},
                {"content": [{"type": "refusal", "refusal": "no"}]},
                {"content": [{"type": "output_text", "text": "Relax your shoulders."}]},
            ]
        }
        assert extract_text(body) == "Relax your shoulders."

    def test_empty_body(self) -> None:
        """Test missing output yields empty text."""
        assert extract_text({}) == ""


class TestOpenAIFeedbackGenerator:
    """Tests for OpenAIFeedbackGenerator."""

    def test_requires_api_key(self) -> None:
        """Test a missing key is a configuration error."""
        with pytest.raises(ConfigurationError):
            OpenAIFeedbackGenerator(config=Settings(openai_api_key=None))

    @pytest.mark.asyncio
    async def test_successful_generation(self, make_sample) -> None:
        """Test request shape and parsed response."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=responses_body("Great start!"))

        generator = make_generator(handler, openai_model="gpt-4o-mini")
        sample = make_sample(31, heart_rate=150)

        result = await generator(Aggregates(session_duration=31), sample, [])

        assert result.text == "Great start!"
        assert result.response_id == "resp_123"

        request = requests[0]
        assert str(request.url) == "https://api.openai.com/v1/responses"
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["model"] == "gpt-4o-mini"
        assert body["max_output_tokens"] == 100
        assert "previous_response_id" not in body
        payload = json.loads(body["input"])
        assert payload["current"]["session_duration"] == 31
        assert payload["raw_metrics"]["heart_rate"] == 150

    @pytest.mark.asyncio
    async def test_chains_previous_response(self, make_sample) -> None:
        """Test the last history entry's id is sent as previous_response_id."""
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json=responses_body("Hill ahead.", response_id="resp_2"))

        generator = make_generator(handler)
        history = [
            Feedback(
                timestamp=make_sample(31).timestamp,
                content="Great start!",
                rule_name="InitialFeedbackRule",
                response_id="resp_1",
            )
        ]

        result = await generator(Aggregates(), None, history)

        assert bodies[0]["previous_response_id"] == "resp_1"
        assert "raw_metrics" not in json.loads(bodies[0]["input"])
        assert result.response_id == "resp_2"

    @pytest.mark.asyncio
    async def test_api_error(self) -> None:
        """Test non-200 responses raise with the status code."""
        generator = make_generator(lambda request: httpx.Response(429, text="rate limited"))

        with pytest.raises(FeedbackGenerationError) as exc_info:
            await generator(Aggregates(), None, [])

        assert exc_info.value.status_code == 429
        assert exc_info.value.response_body == "rate limited"

    @pytest.mark.asyncio
    async def test_empty_text(self) -> None:
        """Test a response without text is an error."""
        generator = make_generator(lambda request: httpx.Response(200, json=responses_body()))

        with pytest.raises(FeedbackGenerationError, match="No text content"):
            await generator(Aggregates(), None, [])

    @pytest.mark.asyncio
    async def test_malformed_body(self) -> None:
        """Test a body without an id is rejected."""
        generator = make_generator(lambda request: httpx.Response(200, json={"output": []}))

        with pytest.raises(FeedbackGenerationError, match="Invalid response format"):
            await generator(Aggregates(), None, [])

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        """Test connection failures surface as generation errors."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        generator = make_generator(handler)

        with pytest.raises(FeedbackGenerationError, match="request failed"):
            await generator(Aggregates(), None, [])
