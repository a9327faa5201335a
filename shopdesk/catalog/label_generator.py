"""
Local label generator for product barcodes and repair tickets
Uses PIL/Pillow and python-barcode; returns PNG data URLs the client prints
"""
import io
import base64
import logging
from typing import Optional, Sequence

from PIL import Image, ImageDraw, ImageFont
import barcode
from barcode.writer import ImageWriter

logger = logging.getLogger(__name__)

FONT_CANDIDATES = (
    ('/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf', '/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf'),
    ('arial.ttf', 'arial.ttf'),
)


def _load_fonts():
    for bold_path, regular_path in FONT_CANDIDATES:
        try:
            return (ImageFont.truetype(bold_path, 18), ImageFont.truetype(regular_path, 14),
                    ImageFont.truetype(regular_path, 12))
        except OSError:
            continue
    default = ImageFont.load_default()
    return default, default, default


def _draw_centered(draw, y, text, font, width):
    bbox = draw.textbbox((0, 0), text, font=font)
    draw.text(((width - (bbox[2] - bbox[0])) // 2, y), text, fill='black', font=font)


def _truncate(text, limit):
    return text if len(text) <= limit else text[:limit] + '...'


def _to_data_url(img):
    buffer = io.BytesIO()
    img.save(buffer, format='PNG', optimize=False, compress_level=1)
    encoded = base64.b64encode(buffer.getvalue()).decode('utf-8')
    buffer.close()
    img.close()
    return f'data:image/png;base64,{encoded}'


def render_code128(value: str, max_width: int, max_height: int) -> Image.Image:
    """Render a Code128 barcode scaled to fit the given box"""
    code128 = barcode.get_barcode_class('code128')
    barcode_img = code128(value, writer=ImageWriter()).render({
        'write_text': False,
        'module_width': 0.3,
        'module_height': 20.0,
        'quiet_zone': 2.0,
        'font_size': 0,
        'text_distance': 0,
        'background': 'white',
        'foreground': 'black',
    })
    img_width, img_height = barcode_img.size
    scale = min(max_width / img_width, max_height / img_height)
    return barcode_img.resize((max(1, int(img_width * scale)), max(1, int(img_height * scale))),
                              Image.Resampling.BILINEAR)


def generate_label_image(
    product_name: str,
    barcode_value: str,
    price: Optional[str] = None,
    shop_name: Optional[str] = None,
    width: int = 400,  # 4 inches at 100 DPI
    height: int = 200,  # 2 inches at 100 DPI
) -> str:
    """
    Generate a product label: shop name on top, barcode in the middle,
    product name and price at the bottom.

    Returns:
        Base64-encoded PNG image as data URL string
    """
    img = Image.new('RGB', (width, height), color='white')
    draw = ImageDraw.Draw(img)
    font_large, font_medium, font_small = _load_fonts()
    margin = 10

    _draw_centered(draw, 8, _truncate(shop_name or product_name, 30), font_medium, width)
    barcode_y = 26
    bottom_line = _truncate(product_name, 30)
    if price is not None:
        bottom_line = f"{bottom_line}  {price}"

    try:
        barcode_img = render_code128(barcode_value, width - 2 * margin, height - barcode_y - 50)
        img.paste(barcode_img, ((width - barcode_img.size[0]) // 2, barcode_y))
        text_y = barcode_y + barcode_img.size[1] + 5
        _draw_centered(draw, text_y, barcode_value, font_small, width)
        _draw_centered(draw, text_y + 16, bottom_line, font_large, width)
    except Exception:
        # Unencodable values still get a readable label
        logger.error(f"Barcode generation failed for '{barcode_value}'", exc_info=True)
        _draw_centered(draw, barcode_y, f'BARCODE: {barcode_value}', font_small, width)
        _draw_centered(draw, barcode_y + 20, bottom_line, font_medium, width)

    return _to_data_url(img)


def generate_ticket_image(
    title: str,
    barcode_value: str,
    lines: Sequence[str] = (),
    width: int = 400,
    height: int = 300,
) -> str:
    """
    Generate a repair ticket: title, barcode, then one text line per entry
    in ``lines`` (customer, device, defect, booking amount).
    """
    img = Image.new('RGB', (width, height), color='white')
    draw = ImageDraw.Draw(img)
    font_large, font_medium, font_small = _load_fonts()

    _draw_centered(draw, 8, _truncate(title, 30), font_large, width)
    y = 34
    try:
        barcode_img = render_code128(barcode_value, width - 20, 70)
        img.paste(barcode_img, ((width - barcode_img.size[0]) // 2, y))
        y += barcode_img.size[1] + 4
    except Exception:
        logger.error(f"Barcode generation failed for '{barcode_value}'", exc_info=True)
    _draw_centered(draw, y, barcode_value, font_small, width)
    y += 20
    for line in lines:
        if y > height - 16:
            break
        draw.text((10, y), _truncate(line, 45), fill='black', font=font_medium)
        y += 18

    return _to_data_url(img)
