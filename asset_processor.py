"""Image utilities: size formatting, dimension decoding and inline previews"""

import base64
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Dict, Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger("AssetProcessor")

KIB = 1024
MIB = 1024 * 1024

# Simple in-memory cache for processed previews
_preview_cache: Dict[str, "EncodedImage"] = {}
_PREVIEW_CACHE_LIMIT = 100


def format_size(size_bytes: int) -> str:
    """Human readable size using binary thresholds: B, KB (1 dp), MB (1 dp)"""
    if size_bytes < KIB:
        return f"{size_bytes} B"
    if size_bytes < MIB:
        return f"{size_bytes / KIB:.1f} KB"
    return f"{size_bytes / MIB:.1f} MB"


def get_image_dimensions(image_bytes: bytes) -> Optional[Tuple[int, int]]:
    """Decode width and height from image bytes, None if the data is not an image"""
    try:
        with Image.open(BytesIO(image_bytes)) as img:
            return img.width, img.height
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Failed to decode image dimensions: {e}")
        return None


def format_dimensions(width: int, height: int) -> str:
    return f"{width} x {height}"


def encode_base64(image_bytes: bytes) -> str:
    """Base64 string (without data URI prefix)"""
    return base64.b64encode(image_bytes).decode("ascii")


@dataclass(frozen=True)
class EncodedImage:
    """Encoded preview with metrics"""
    b64: str
    mime_type: str
    size_px: Tuple[int, int]
    bytes_len: int
    raw_bytes: bytes


def get_cache_key(asset_id: str, max_dim: int, quality: int) -> str:
    """Generate cache key for processed preview"""
    return f"{asset_id}:{max_dim}:webp:{quality}"


def _cache_preview(cache_key: str, encoded: EncodedImage):
    """Cache processed preview (drop the oldest entry past the limit)"""
    if len(_preview_cache) >= _PREVIEW_CACHE_LIMIT:
        _preview_cache.pop(next(iter(_preview_cache)))
    _preview_cache[cache_key] = encoded


def clear_preview_cache():
    _preview_cache.clear()


def encode_preview(
    image_bytes: bytes,
    *,
    max_dim: int = 512,
    max_b64_chars: int = 100_000,
    quality: int = 70,
    cache_key: Optional[str] = None,
) -> EncodedImage:
    """Downscale and re-encode an image to WebP within a base64 budget.

    Quality is stepped down (quality, 55, 40) at each size in
    (max_dim, 384, 256) until the base64 payload, including its data URI
    prefix, fits ``max_b64_chars``.

    Raises:
        ValueError: If the image still exceeds the budget at the smallest settings
        PIL.UnidentifiedImageError: If the bytes are not a decodable image
    """
    if cache_key and cache_key in _preview_cache:
        logger.debug(f"Cache hit for {cache_key}")
        return _preview_cache[cache_key]

    with Image.open(BytesIO(image_bytes)) as loaded:
        im = ImageOps.exif_transpose(loaded)
        if im.mode not in ("RGB", "RGBA", "L", "LA"):
            im = im.convert("RGB")
        im.load()

    prefix_len = len("data:image/webp;base64,")
    for target in (max_dim, 384, 256):
        w, h = im.size
        if max(w, h) > target:
            scale = target / max(w, h)
            resized = im.resize((max(1, int(w * scale)), max(1, int(h * scale))), Image.Resampling.LANCZOS)
        else:
            resized = im

        for q in (quality, 55, 40):
            buf = BytesIO()
            resized.save(buf, format="WEBP", quality=q, method=5)
            encoded_bytes = buf.getvalue()
            b64_string = encode_base64(encoded_bytes)
            if len(b64_string) + prefix_len <= max_b64_chars:
                result = EncodedImage(
                    b64=b64_string,
                    mime_type="image/webp",
                    size_px=resized.size,
                    bytes_len=len(encoded_bytes),
                    raw_bytes=encoded_bytes,
                )
                if cache_key:
                    _cache_preview(cache_key, result)
                logger.info(
                    f"preview encoding: src={len(image_bytes)}B src_dims={im.size[0]}x{im.size[1]} "
                    f"preview_dims={resized.size[0]}x{resized.size[1]} quality={q} b64_chars={len(b64_string)}"
                )
                return result

    raise ValueError(f"Image exceeds base64 budget of {max_b64_chars} chars even at 256px, quality=40")
