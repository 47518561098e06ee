"""
Foto do casal + QR code estilizado (cartão rosa com cantos arredondados) no canto inferior esquerdo.
Entrada: caminho da foto, URL da página; saída: caminho da imagem processada.
"""
import io
import logging
from pathlib import Path

import qrcode
from PIL import Image, ImageDraw, ImageOps

log = logging.getLogger(__name__)

QR_DARK = "#ff3366"
GRADIENT_START = (0xFF, 0xE3, 0xEC)
GRADIENT_END = (0xFF, 0xC1, 0xD9)
QR_RATIO = 0.2  # lado do QR = 20% do menor lado da foto
QR_MIN_SIZE = 120
FALLBACK_MIN_SIDE = 600  # quando a foto não informa dimensões
PADDING_RATIO = 0.18
PADDING_MIN = 18
CORNER_RATIO = 0.22
EDGE_OFFSET = 40  # distância do cartão até as bordas esquerda e inferior


class QrImageError(Exception):
    pass


def qr_size_for(width: int | None, height: int | None) -> int:
    sides = [v for v in (width, height) if isinstance(v, int) and v > 0]
    min_side = min(sides) if sides else FALLBACK_MIN_SIDE
    return max(round(min_side * QR_RATIO), QR_MIN_SIZE)


def _qr_code(target_url: str, size: int) -> Image.Image:
    qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_M, border=4)
    qr.add_data(target_url)
    qr.make(fit=True)
    img = qr.make_image(fill_color=QR_DARK, back_color="transparent")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)
    return Image.open(buffer).convert("RGBA").resize((size, size), Image.Resampling.NEAREST)


def _gradient_card(side: int, radius: int) -> Image.Image:
    """Cartão com degradê diagonal (topo-esquerda -> base-direita) e cantos arredondados."""
    span = max(2 * (side - 1), 1)
    mask_data = [round(255 * (x + y) / span) for y in range(side) for x in range(side)]
    blend = Image.new("L", (side, side))
    blend.putdata(mask_data)
    start = Image.new("RGBA", (side, side), GRADIENT_START + (255,))
    end = Image.new("RGBA", (side, side), GRADIENT_END + (255,))
    gradient = Image.composite(end, start, blend)

    rounded = Image.new("L", (side, side), 0)
    ImageDraw.Draw(rounded).rounded_rectangle((0, 0, side - 1, side - 1), radius=radius, fill=255)
    card = Image.new("RGBA", (side, side), (0, 0, 0, 0))
    card.paste(gradient, (0, 0), rounded)
    return card


def stylized_qr(target_url: str, qr_size: int) -> Image.Image:
    padding = round(max(qr_size * PADDING_RATIO, PADDING_MIN))
    side = round(qr_size + padding * 2)
    card = _gradient_card(side, round(side * CORNER_RATIO))
    card.alpha_composite(_qr_code(target_url, qr_size), (padding, padding))
    return card


def generate_qr_artifact(photo_path: str | Path, target_url: str, output_path: str | Path) -> Path:
    """Compõe a foto com o QR code que aponta para a página do casal e grava em output_path."""
    photo_path = Path(photo_path)
    output_path = Path(output_path)
    try:
        with Image.open(photo_path) as src:
            photo = ImageOps.exif_transpose(src).convert("RGBA")
    except (OSError, ValueError) as e:
        raise QrImageError(f"Could not read photo {photo_path.name}: {e}") from e

    width, height = photo.size
    card = stylized_qr(target_url, qr_size_for(width, height))
    left = min(EDGE_OFFSET, max(width - card.width, 0))
    top = max(height - card.height - EDGE_OFFSET, 0)
    photo.alpha_composite(card, (left, top))

    output_path.parent.mkdir(parents=True, exist_ok=True)
    if output_path.suffix.lower() in (".jpg", ".jpeg"):
        photo.convert("RGB").save(output_path, quality=92)
    else:
        photo.save(output_path)
    log.info("QR artifact written: %s (photo %sx%s, card %s)", output_path.name, width, height, card.width)
    return output_path
