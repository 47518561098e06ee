"""QR artifact: size rules and composition over the couple's photo."""
from PIL import Image

import pytest

from qrlove.services.qr_image import (
    QrImageError,
    generate_qr_artifact,
    qr_size_for,
    stylized_qr,
)


@pytest.mark.parametrize(
    "width,height,expected",
    [(800, 600, 120), (2000, 1500, 300), (4000, 3000, 600), (None, None, 120), (0, 1000, 200)],
)
def test_qr_size_for(width, height, expected):
    assert qr_size_for(width, height) == expected


def test_stylized_qr_card_has_padding_and_rounded_corners():
    card = stylized_qr("http://testserver/pages/Ana-abc", 200)
    # padding = max(200 * 0.18, 18) = 36 -> lado 272
    assert card.size == (272, 272)
    assert card.getpixel((0, 0))[3] == 0
    assert card.getpixel((136, 5))[3] == 255


def test_generate_qr_artifact_places_card_bottom_left(tmp_path):
    src = tmp_path / "photo.png"
    Image.new("RGB", (1000, 800), (10, 10, 10)).save(src)
    out = generate_qr_artifact(src, "http://testserver/pages/Ana-abc", tmp_path / "edit" / "processed-photo.png")
    assert out.exists()
    with Image.open(out) as img:
        assert img.size == (1000, 800)
        # cartão a 40px da esquerda e da base
        card_side = 160 + 2 * round(max(160 * 0.18, 18))
        assert img.getpixel((40 + card_side // 2, 800 - 40 - 3))[:3] != (10, 10, 10)
        assert img.getpixel((900, 100))[:3] == (10, 10, 10)
        assert img.getpixel((20, 400))[:3] == (10, 10, 10)


def test_generate_qr_artifact_jpeg_output_is_rgb(tmp_path):
    src = tmp_path / "photo.jpg"
    Image.new("RGB", (640, 480), (200, 180, 160)).save(src)
    out = generate_qr_artifact(src, "http://testserver/pages/Ana-abc", tmp_path / "processed-photo.jpg")
    with Image.open(out) as img:
        assert img.size == (640, 480)
        assert img.mode == "RGB"


def test_generate_qr_artifact_small_photo(tmp_path):
    src = tmp_path / "tiny.png"
    Image.new("RGBA", (100, 100), (255, 255, 255, 255)).save(src)
    out = generate_qr_artifact(src, "http://testserver/pages/x", tmp_path / "out.png")
    with Image.open(out) as img:
        assert img.size == (100, 100)


def test_generate_qr_artifact_unreadable_photo(tmp_path):
    src = tmp_path / "broken.jpg"
    src.write_bytes(b"not an image")
    with pytest.raises(QrImageError):
        generate_qr_artifact(src, "http://testserver/pages/x", tmp_path / "out.jpg")
