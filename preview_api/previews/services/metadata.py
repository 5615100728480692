"""Header-only image metadata.

Reads width, height and format straight from the container bytes so the
placeholder path can report dimensions without decoding the image. This is
best-effort inference, not validation: anything unreadable maps to the
800x600 default instead of raising.
"""
import logging
import struct

from previews.models.schemas import ImageMetadata

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 800
DEFAULT_HEIGHT = 600

JPEG_SOI = b"\xff\xd8"
PNG_SIGNATURE = b"\x89PNG"
# SOF0 (baseline) .. SOF3 (lossless)
JPEG_SOF_MARKERS = range(0xFFC0, 0xFFC4)


def _default(fmt: str = "unknown") -> ImageMetadata:
    return ImageMetadata(width=DEFAULT_WIDTH, height=DEFAULT_HEIGHT, format=fmt)


def _metadata(width: int, height: int, fmt: str) -> ImageMetadata:
    if width <= 0 or height <= 0:
        return _default(fmt)
    return ImageMetadata(width=width, height=height, format=fmt)


def _parse_jpeg(buffer: bytes) -> ImageMetadata:
    offset = 2
    while offset + 4 <= len(buffer):
        marker, length = struct.unpack_from(">HH", buffer, offset)
        if marker in JPEG_SOF_MARKERS:
            if offset + 9 > len(buffer):
                break
            # segment: marker(2) length(2) precision(1) height(2) width(2)
            height, width = struct.unpack_from(">HH", buffer, offset + 5)
            return _metadata(width, height, "jpeg")
        if length < 2:
            break
        offset += length + 2
    return _default("jpeg")


def _parse_png(buffer: bytes) -> ImageMetadata:
    # IHDR is always the first chunk
    if len(buffer) > 24:
        width, height = struct.unpack_from(">II", buffer, 16)
        return _metadata(width, height, "png")
    return _default("png")


def _parse_webp(buffer: bytes) -> ImageMetadata:
    if len(buffer) > 30:
        vp8_index = buffer.find(b"VP8")
        if 0 < vp8_index < len(buffer) - 18:
            chunk = buffer[vp8_index:vp8_index + 4]
            if chunk == b"VP8X":
                # extended header: 24-bit canvas size minus one
                width = int.from_bytes(buffer[vp8_index + 12:vp8_index + 15], "little") + 1
                height = int.from_bytes(buffer[vp8_index + 15:vp8_index + 18], "little") + 1
                return _metadata(width, height, "webp")
            if chunk == b"VP8L":
                bits = struct.unpack_from("<I", buffer, vp8_index + 9)[0]
                return _metadata((bits & 0x3FFF) + 1, ((bits >> 14) & 0x3FFF) + 1, "webp")
            # lossy: chunk header(8) frame tag(3) start code(3)
            width, height = struct.unpack_from("<HH", buffer, vp8_index + 14)
            return _metadata(width & 0x3FFF, height & 0x3FFF, "webp")
    return _default("webp")


def read_metadata(buffer: bytes) -> ImageMetadata:
    """Infer {width, height, format} from magic numbers and header fields."""
    try:
        if buffer[:2] == JPEG_SOI:
            return _parse_jpeg(buffer)
        if buffer[:4] == PNG_SIGNATURE:
            return _parse_png(buffer)
        if buffer[:4] == b"RIFF" and buffer[8:12] == b"WEBP":
            return _parse_webp(buffer)
    except (struct.error, ValueError, TypeError) as e:
        logger.warning(f"Failed to parse image header ({len(buffer or b'')} bytes): {e}")
    return _default()
