"""
Background Generation Service

Turns a short request ("beach sunset") into a background image in two
model calls:
1. The prompt model expands the request into a detailed image prompt
2. The image model renders that prompt

CRITICAL: Background generation is cosmetic and must never break a
conversation. Any failure (no prompt, no image, bytes Pillow cannot open,
timeout) leaves the service with has_image False, and the front end shows
a gradient with the user's description instead.
"""

import asyncio
import base64
from io import BytesIO
from typing import Any, Optional

import google.generativeai as genai
import structlog
from PIL import Image

from genui_expenses.config import GeminiSettings, get_settings
from genui_expenses.models.chat import BackgroundState
from genui_expenses.notifier import ChangeNotifier


class BackgroundGenerationError(Exception):
    """The image model did not produce a usable image."""
    pass


PROMPT_ENHANCEMENT_TEMPLATE = """You are an expert at creating detailed image generation prompts.
Given a simple user request for a background image, create a highly detailed,
aesthetic prompt suitable for image generation.

User request: "{prompt}"

Create a detailed prompt that:
1. Describes the visual style, colors, mood, and atmosphere
2. Specifies it's for an app background (subtle, not distracting)
3. Includes artistic direction (lighting, composition, color palette)
4. Is suitable for an expense tracker app (professional but inviting)

Respond with ONLY the enhanced prompt, nothing else."""


def extract_image(response: Any) -> Optional[tuple[bytes, str]]:
    """First inline image part of a generate_content response, if any."""
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            data = getattr(inline, "data", None) if inline is not None else None
            if data:
                return bytes(data), getattr(inline, "mime_type", None) or "image/png"
    return None


def verify_image(image_bytes: bytes) -> tuple[int, int]:
    """
    Check that the bytes decode as an image and return its size.

    Raises:
        BackgroundGenerationError: If Pillow cannot read the bytes
    """
    try:
        with Image.open(BytesIO(image_bytes)) as img:
            img.verify()
        # verify() leaves the image unusable, so reopen for the size
        with Image.open(BytesIO(image_bytes)) as img:
            return img.size
    except Exception as e:
        raise BackgroundGenerationError(f"Generated image is not readable: {e}") from e


class BackgroundService(ChangeNotifier):
    """
    Holds the current background and regenerates it on request.

    The two models can be injected (tests pass fakes); otherwise they are
    created from GeminiSettings on first use.
    """

    def __init__(
        self,
        prompt_model: Optional[Any] = None,
        image_model: Optional[Any] = None,
        settings: Optional[GeminiSettings] = None,
        timeout_seconds: float = 60.0,
    ):
        super().__init__()
        self._prompt_model = prompt_model
        self._image_model = image_model
        self._settings = settings
        self._timeout = timeout_seconds
        self._state = BackgroundState()
        self._is_generating = False
        self._logger = structlog.get_logger(__name__)

    @property
    def state(self) -> BackgroundState:
        return self._state

    @property
    def is_generating(self) -> bool:
        return self._is_generating

    @property
    def data_url(self) -> Optional[str]:
        """The current image as a data: URL, or None when on the gradient."""
        if not self._state.has_image:
            return None
        encoded = base64.b64encode(self._state.image_bytes).decode("ascii")
        return f"data:{self._state.mime_type or 'image/png'};base64,{encoded}"

    async def generate_background(self, prompt: str) -> BackgroundState:
        """
        Generate a new background for `prompt`.

        Always returns a state; on failure the state carries only the
        description and the gradient is shown.
        """
        self._is_generating = True
        self.notify_listeners()

        try:
            enhanced = await self._enhance_prompt(prompt)
        except Exception as e:
            self._logger.warning("background_prompt_failed", prompt=prompt, error=str(e))
            state = BackgroundState(description=prompt)
        else:
            try:
                image_bytes, mime_type = await self._generate_image(enhanced)
                size = verify_image(image_bytes)
            except Exception as e:
                self._logger.warning("background_image_failed", prompt=prompt, error=str(e))
                state = BackgroundState(description=prompt, enhanced_prompt=enhanced)
            else:
                self._logger.info(
                    "background_generated",
                    prompt=prompt,
                    image_bytes=len(image_bytes),
                    image_size=size,
                )
                state = BackgroundState(
                    description=prompt,
                    enhanced_prompt=enhanced,
                    image_bytes=image_bytes,
                    mime_type=mime_type,
                    image_size=size,
                )
        finally:
            self._is_generating = False

        self._state = state
        self.notify_listeners()
        return state

    def clear_background(self) -> None:
        self._state = BackgroundState()
        self.notify_listeners()

    # -------------------------------------------------------------------------
    # Model calls
    # -------------------------------------------------------------------------

    async def _enhance_prompt(self, prompt: str) -> str:
        response = await asyncio.wait_for(
            self._get_prompt_model().generate_content_async(
                PROMPT_ENHANCEMENT_TEMPLATE.format(prompt=prompt)
            ),
            timeout=self._timeout,
        )
        text = (response.text or "").strip()
        if not text:
            raise BackgroundGenerationError("Prompt model returned no text")
        return text

    async def _generate_image(self, enhanced_prompt: str) -> tuple[bytes, str]:
        response = await asyncio.wait_for(
            self._get_image_model().generate_content_async(enhanced_prompt),
            timeout=self._timeout,
        )
        image = extract_image(response)
        if image is None:
            raise BackgroundGenerationError("Image model response has no image data")
        return image

    def _gemini_settings(self) -> GeminiSettings:
        if self._settings is None:
            self._settings = get_settings().gemini
        return self._settings

    def _get_prompt_model(self) -> Any:
        if self._prompt_model is None:
            settings = self._gemini_settings()
            genai.configure(api_key=settings.api_key)
            self._prompt_model = genai.GenerativeModel(
                model_name=settings.prompt_model_name,
                generation_config={"temperature": 0.9, "max_output_tokens": 512},
            )
        return self._prompt_model

    def _get_image_model(self) -> Any:
        if self._image_model is None:
            settings = self._gemini_settings()
            genai.configure(api_key=settings.api_key)
            self._image_model = genai.GenerativeModel(
                model_name=settings.image_model_name,
                generation_config={"response_modalities": ["TEXT", "IMAGE"]},
            )
        return self._image_model
