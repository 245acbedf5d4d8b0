"""
Model Client Module - Multimodal Model Backends
===============================================
Sends one drawing plus an instruction to a generative model and returns
the reply text. Supports the Google Gen AI SDK (Gemini) and a mock
backend for trying the interface without an API key.
"""

import io
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, Sequence, Tuple

import numpy as np
from google import genai
from google.genai import errors, types
from PIL import Image

from .config import (
    AppConfig,
    DEFAULT_GENERATION_SETTINGS,
    DEFAULT_MODEL_ID,
    DEFAULT_SAFETY_SETTINGS,
    GenerationSettings,
    SafetySetting,
)


class ModelBackend(Enum):
    """Available model backends."""
    GEMINI = auto()
    MOCK = auto()


class SketchChatError(Exception):
    """Base class for analysis failures."""


class PreconditionError(SketchChatError):
    """No raster or no credential; nothing was sent."""


class TransportError(SketchChatError):
    """The request failed or the model returned a fault."""


@dataclass
class ModelRequest:
    """A single user turn sent to the model."""
    prompt: str
    image_data: bytes
    mime_type: str = "image/png"
    model_id: str = DEFAULT_MODEL_ID
    generation: GenerationSettings = DEFAULT_GENERATION_SETTINGS
    safety: Tuple[SafetySetting, ...] = field(default=DEFAULT_SAFETY_SETTINGS)


def build_generate_config(
    generation: GenerationSettings,
    safety: Sequence[SafetySetting]
) -> types.GenerateContentConfig:
    """Translate static settings into the SDK's request config."""
    return types.GenerateContentConfig(
        temperature=generation.temperature,
        top_k=generation.top_k,
        top_p=generation.top_p,
        max_output_tokens=generation.max_output_tokens,
        safety_settings=[
            types.SafetySetting(
                category=types.HarmCategory[s.category],
                threshold=types.HarmBlockThreshold[s.threshold],
            )
            for s in safety
        ],
    )


def build_contents(request: ModelRequest) -> List[types.Content]:
    """Build the user turn: instruction text followed by inline image bytes."""
    return [
        types.Content(
            role="user",
            parts=[
                types.Part(text=request.prompt),
                types.Part.from_bytes(data=request.image_data, mime_type=request.mime_type),
            ],
        )
    ]


class ModelClient:
    """Interface shared by all backends."""

    backend: ModelBackend

    def is_configured(self) -> bool:
        """Check if the backend has what it needs to send a request."""
        raise NotImplementedError

    def generate(self, request: ModelRequest) -> str:
        """
        Send a request and return the reply text.

        Raises:
            TransportError: If the request fails or the reply is empty
        """
        raise NotImplementedError


class GeminiClient(ModelClient):
    """Gemini backend using the google-genai SDK."""

    backend = ModelBackend.GEMINI

    def __init__(self, api_key: str):
        """
        Initialize the client.

        Args:
            api_key: Gemini API key
        """
        self.api_key = api_key
        self._client = genai.Client(api_key=api_key) if api_key else None

    def is_configured(self) -> bool:
        return self._client is not None

    def generate(self, request: ModelRequest) -> str:
        if self._client is None:
            raise PreconditionError("Gemini client not initialized. Check GEMINI_API_KEY.")

        try:
            response = self._client.models.generate_content(
                model=request.model_id,
                contents=build_contents(request),
                config=build_generate_config(request.generation, request.safety),
            )
        except errors.APIError as e:
            raise TransportError(f"API error: {e.code} - {e.message}") from e

        text = response.text
        if not text:
            # Blocked by safety settings or no candidates
            raise TransportError("Empty response from model")
        return text


class MockModelClient(ModelClient):
    """
    Mock backend for trying the app without API access.
    Returns scripted replies in order, then describes the drawing's ink.
    """

    backend = ModelBackend.MOCK

    def __init__(self, replies: Optional[Sequence[str]] = None):
        self._replies = list(replies or [])
        self.requests: List[ModelRequest] = []

    def is_configured(self) -> bool:
        return True

    def generate(self, request: ModelRequest) -> str:
        self.requests.append(request)
        if self._replies:
            return self._replies.pop(0)

        image = np.array(Image.open(io.BytesIO(request.image_data)).convert('L'))
        coverage = float(np.count_nonzero(image)) / image.size if image.size else 0.0
        if coverage == 0:
            return "I can't see anything yet. Try drawing something!"
        return f"Nice sketch! Your strokes cover {coverage:.1%} of the canvas."


def create_client(config: AppConfig, use_mock: bool = False) -> Optional[ModelClient]:
    """
    Factory function to create a model client.

    Args:
        config: Application config holding the credential
        use_mock: If True, use the mock backend

    Returns:
        ModelClient instance, or None if no credential is available
    """
    if use_mock:
        print("[INFO] Using mock model backend")
        return MockModelClient()

    if not config.has_credentials():
        print("[WARNING] No GEMINI_API_KEY found. Analysis will be unavailable.")
        print("[WARNING] Set GEMINI_API_KEY in your .env file or run with --mock")
        return None

    print(f"[INFO] Using Gemini backend ({config.model_id})")
    return GeminiClient(api_key=config.api_key)


if __name__ == "__main__":
    import cv2

    from .analysis import INSTRUCTION_PROMPT

    print("Testing Model Client Module")
    print("=" * 40)

    # Handwritten-ish "hi"
    sketch = np.zeros((240, 320, 3), dtype=np.uint8)
    cv2.line(sketch, (80, 60), (80, 180), (255, 255, 255), 3)
    cv2.line(sketch, (80, 120), (140, 120), (255, 255, 255), 3)
    cv2.line(sketch, (140, 100), (140, 180), (255, 255, 255), 3)
    cv2.line(sketch, (200, 110), (200, 180), (255, 255, 255), 3)
    cv2.circle(sketch, (200, 80), 3, (255, 255, 255), -1)
    ok, png = cv2.imencode('.png', sketch)

    config = AppConfig.from_env()
    client = create_client(config, use_mock=not config.has_credentials())
    request = ModelRequest(prompt=INSTRUCTION_PROMPT, image_data=png.tobytes(), model_id=config.model_id)
    print(client.generate(request))
