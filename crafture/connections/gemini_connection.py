import asyncio
import base64
import logging
from typing import Any, Optional, Sequence

from google import genai
from google.genai import types

from crafture.errors import ConfigurationError, GenerationError
from crafture.models.artifacts import GeneratedArtifact, PNG_MIME_TYPE

logger = logging.getLogger("connections.gemini_connection")

# 400x400 dark square labelled "AI Image"
PLACEHOLDER_IMAGE = (
    "data:image/svg+xml;base64,PHN2ZyB3aWR0aD0iNDAwIiBoZWlnaHQ9IjQwMCIgeG1sbnM9Imh0dHA6Ly93d3cudzMub3JnLzIwMDAv"
    "c3ZnIj48cmVjdCB3aWR0aD0iMTAwJSIgaGVpZ2h0PSIxMDAlIiBmaWxsPSIjMzMzIi8+PHRleHQgeD0iNTAlIiB5PSI1MCUiIGZvbnQt"
    "ZmFtaWx5PSJBcmlhbCIgZm9udC1zaXplPSIyNCIgZmlsbD0iI2ZmZiIgdGV4dC1hbmNob3I9Im1pZGRsZSIgZHk9Ii4zZW0iPkFJIElt"
    "YWdlPC90ZXh0Pjwvc3ZnPg=="
)

INSTRUCTION_TEMPLATE = (
    'Generate a new image based on this prompt: "{prompt}". '
    "Use the provided reference images as inspiration for style, composition, and visual elements."
)


def _as_bytes(data) -> bytes:
    return data if isinstance(data, bytes) else base64.b64decode(data)


class GeminiImageConnection:
    def __init__(self, api_key: Optional[str], model: str, timeout: float = 120.0, client: Any = None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = client

    def is_configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self) -> genai.Client:
        """Get or create the Gemini client"""
        if not self._client:
            if not self.api_key:
                raise ConfigurationError("GEMINI_API_KEY environment variable is not set")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def build_contents(self, prompt: str, reference_images: Sequence[bytes]) -> list:
        parts = [types.Part(text=INSTRUCTION_TEMPLATE.format(prompt=prompt))]
        for image in reference_images:
            parts.append(types.Part(inline_data=types.Blob(data=image, mime_type=PNG_MIME_TYPE)))
        return [types.Content(role="user", parts=parts)]

    def extract_artifact(self, response) -> GeneratedArtifact:
        generated_images = getattr(response, "generated_images", None)
        if generated_images:
            logger.info("Generated image data received")
            return GeneratedArtifact.from_png(_as_bytes(generated_images[0].image.image_bytes))

        candidates = getattr(response, "candidates", None) or []
        content = getattr(candidates[0], "content", None) if candidates else None
        for part in getattr(content, "parts", None) or []:
            if getattr(part, "text", None):
                logger.info(f"Generated text: {part.text}")
                continue
            inline_data = getattr(part, "inline_data", None)
            if inline_data and getattr(inline_data, "data", None):
                logger.info("Generated image data received")
                return GeneratedArtifact.from_png(_as_bytes(inline_data.data))

        logger.warning("Image generation completed but no image data received")
        return GeneratedArtifact(
            image_bytes=None,
            mime_type="image/svg+xml",
            data_url=PLACEHOLDER_IMAGE,
            message="Image generation completed but no image data received.",
        )

    async def generate(self, prompt: str, reference_images: Sequence[bytes]) -> GeneratedArtifact:
        logger.info("Starting AI image generation...")
        logger.info(f"Prompt: {prompt}")
        logger.info(f"Number of reference images: {len(reference_images)}")

        client = self._get_client()
        try:
            response = await asyncio.wait_for(
                client.aio.models.generate_content(
                    model=self.model,
                    contents=self.build_contents(prompt, reference_images),
                    config=types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise GenerationError(f"Failed to generate AI image: timed out after {self.timeout}s") from e
        except Exception as e:
            logger.error(f"Error generating AI image: {e}")
            raise GenerationError(f"Failed to generate AI image: {e}") from e

        logger.info("AI image generation completed")
        return self.extract_artifact(response)
