import asyncio
import io
import logging

import aiohttp
from PIL import Image, UnidentifiedImageError

from crafture.errors import DecodeError, FetchError

logger = logging.getLogger("helpers.image_normalizer")

FETCH_TIMEOUT_S = 10


async def fetch_image(url: str, timeout: float = FETCH_TIMEOUT_S) -> bytes:
    """Download a remote image, failing on non-2xx responses or timeout"""
    try:
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session:
            async with session.get(url) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(f"Failed to fetch {url}: HTTP {response.status}")
                return await response.read()
    except asyncio.TimeoutError as e:
        raise FetchError(f"Timed out fetching {url} after {timeout}s") from e
    except aiohttp.ClientError as e:
        raise FetchError(f"Failed to fetch {url}: {e}") from e


def to_canonical_png(data: bytes) -> bytes:
    """Re-encode any decodable image as PNG"""
    try:
        with Image.open(io.BytesIO(data)) as image:
            # Animated sources keep their first frame
            image.seek(0)
            if image.mode not in ("RGB", "RGBA", "L", "LA"):
                image = image.convert("RGBA")
            output = io.BytesIO()
            image.save(output, format="PNG")
            return output.getvalue()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise DecodeError(f"Failed to convert image to PNG: {e}") from e


async def normalize(url: str, timeout: float = FETCH_TIMEOUT_S) -> bytes:
    logger.info(f"Converting image to PNG: {url}")
    body = await fetch_image(url, timeout=timeout)
    png = to_canonical_png(body)
    logger.info(f"Successfully converted image to PNG, size: {len(png)} bytes")
    return png
