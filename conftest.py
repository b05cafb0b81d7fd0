"""
Shared fixtures for the Purine Vision tests.
"""

import copy
import io
import json

import httpx
import pytest
from PIL import Image

from purine_vision.models import PurineAnalysisModel

SAMPLE_RESULT = {
    "high_purine_foods": [
        {
            "food_name": "Shrimp",
            "purine_value": 180,
            "coordinates": {"x1": 20, "y1": 40, "x2": 180, "y2": 180},
            "description": "Boiled shrimp",
        }
    ],
    "medium_purine_foods": [
        {
            "food_name": "Tofu",
            "purine_value": 68,
            "coordinates": {"x1": 60, "y1": 60, "x2": 120, "y2": 120},
        }
    ],
    "low_purine_foods": [{"food_name": "Rice", "purine_value": 18}],
}

EMPTY_RESULT = {
    "high_purine_foods": [],
    "medium_purine_foods": [],
    "low_purine_foods": [],
}


def _responses_envelope(payload) -> dict:
    """Wrap a result the way the ARK Responses API returns model text."""
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return {
        "id": "resp_test",
        "output": [
            {"type": "reasoning", "summary": []},
            {
                "type": "message",
                "role": "assistant",
                "content": [{"type": "output_text", "text": text}],
            },
        ],
    }


class FakeArk:
    """Stand-in for the hosted model, served through ``httpx.MockTransport``."""

    def __init__(self):
        self.status_code = 200
        self.body = _responses_envelope(SAMPLE_RESULT)
        self.error = None
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if isinstance(self.body, (bytes, str)):
            return httpx.Response(self.status_code, content=self.body)
        return httpx.Response(self.status_code, json=self.body)

    def reply(self, payload):
        """Answer with ``payload`` as the model's output text."""
        self.body = _responses_envelope(payload)

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def sample_result():
    """A model result with boxed high and medium foods and an unboxed low one."""
    return copy.deepcopy(SAMPLE_RESULT)


@pytest.fixture
def empty_result():
    return copy.deepcopy(EMPTY_RESULT)


@pytest.fixture
def responses_envelope():
    """Factory wrapping a result the way the ARK Responses API returns it."""
    return _responses_envelope


@pytest.fixture
def fake_ark():
    return FakeArk()


@pytest.fixture
def purine_model(fake_ark):
    """Model client whose HTTP traffic goes to ``fake_ark``."""
    return PurineAnalysisModel(
        api_key="test-key",
        endpoint_id="ep-test",
        api_url="https://ark.example.com/api/v3/responses",
        timeout=5.0,
        transport=httpx.MockTransport(fake_ark),
    )


@pytest.fixture
def sample_image():
    """Create a sample test image."""
    image = Image.new("RGB", (224, 224), color="white")
    img_bytes = io.BytesIO()
    image.save(img_bytes, format="JPEG")
    img_bytes.seek(0)
    return img_bytes
