import base64
import io

from PIL import Image, ImageFilter, ImageOps

from previews.models.schemas import Placeholders, RawImage
from previews.services.compression import decode_image

BLUR_SIZE = (10, 6)


def blur_data_url(img: Image.Image) -> str:
    """Tiny blurred WebP, base64-embedded, for instant paint."""
    tiny = ImageOps.fit(img, BLUR_SIZE, Image.Resampling.LANCZOS)
    tiny = tiny.filter(ImageFilter.GaussianBlur(1))
    out = io.BytesIO()
    tiny.save(out, format="WEBP", quality=20)
    return "data:image/webp;base64," + base64.b64encode(out.getvalue()).decode("ascii")


def average_color(img: Image.Image) -> str:
    r, g, b = img.convert("RGB").resize((1, 1), Image.Resampling.BOX).getpixel((0, 0))
    return f"rgb({r}, {g}, {b})"


def generate_placeholders(raw_image: RawImage) -> Placeholders:
    img = decode_image(raw_image.buffer)
    return Placeholders(blur_data_url=blur_data_url(img), avg_color=average_color(img))
