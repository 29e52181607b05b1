import logging

import numpy as np
import pytest
from PIL import Image

import bitplane_codec
from color_model import COLOR_MODES, luminance, rol444
from converter import Conversion, Stage, auto_output_path, degas_to_png, png_to_degas
from degas_errors import TooManyColors, UnsupportedDimensions, UnsupportedPixelFormat
from degas_image import parse_degas
from pixel_sampler import SourceImage

from conftest import pattern_image, stf_colors


def test_pi1_end_to_end(sixteen_color_image):
    src = SourceImage.from_pil(sixteen_color_image)
    data = png_to_degas(src)
    assert len(data) == 32034
    assert data[:2] == b"\x00\x00"

    image = parse_degas(data)
    indices = bitplane_codec.unpack(image.pixels, 320, 200, 2)
    assert bitplane_codec.pack(indices, 2) == image.pixels
    assert indices.max() == 15

    # palette is ordered darkest first
    keys = [luminance(rol444(w)) for w in image.palette]
    assert keys == sorted(keys)


def test_pc1_matches_pi1(sixteen_color_image):
    src = SourceImage.from_pil(sixteen_color_image)
    raw = png_to_degas(src)
    packed = png_to_degas(src, compressed=True)
    assert len(packed) >= 1634
    assert packed[:2] == b"\x80\x00"
    assert packed[2:34] == raw[2:34]
    assert parse_degas(packed).pixels == raw[34:]


def test_colors_survive_the_round_trip(sixteen_color_image):
    src = SourceImage.from_pil(sixteen_color_image)
    png = degas_to_png(parse_degas(png_to_degas(src)))
    assert png.mode == "P"
    assert np.array_equal(np.array(png.convert("RGB")), np.array(sixteen_color_image))


def test_pi2_four_colors():
    img = pattern_image(640, 200, stf_colors(4))
    data = png_to_degas(SourceImage.from_pil(img))
    image = parse_degas(data)
    assert image.format.name == "PI2"
    assert image.palette[4:] == [0] * 12
    assert np.array_equal(np.array(degas_to_png(image).convert("RGB")), np.array(img))


def test_pi3_monochrome_round_trip():
    pixels = np.zeros((400, 640), dtype=np.uint8)
    pixels[100:300, 200:440] = 255
    img = Image.fromarray(pixels)
    data = png_to_degas(SourceImage.from_pil(img), compressed=True)
    image = parse_degas(data)
    assert image.format.name == "PC3"
    assert image.palette == [0] * 16
    # black is ink: bit set
    assert image.pixels[0] == 0xFF
    back = degas_to_png(image)
    assert back.mode == "L"
    assert np.array_equal(np.array(back), pixels)


def test_too_many_colors_fails_after_sampling():
    img = pattern_image(320, 200, stf_colors(17))
    conversion = Conversion()
    with pytest.raises(TooManyColors) as info:
        conversion.to_degas(SourceImage.from_pil(img))
    assert info.value.stage is Stage.SAMPLED
    assert info.value.count == 17
    assert conversion.stage is Stage.SAMPLED


def test_unsupported_dimensions():
    with pytest.raises(UnsupportedDimensions) as info:
        png_to_degas(SourceImage.from_pil(Image.new("RGB", (100, 100))))
    assert info.value.stage is Stage.START


def test_unsupported_pixel_format():
    with pytest.raises(UnsupportedPixelFormat):
        png_to_degas(SourceImage.from_pil(Image.new("LA", (320, 200))))


def test_stages_reach_done(sixteen_color_image):
    conversion = Conversion()
    conversion.to_degas(SourceImage.from_pil(sixteen_color_image), compressed=True)
    assert conversion.stage is Stage.DONE
    assert len(conversion.palette) == 16
    assert sum(e.count for e in conversion.usage) == 64000
    with pytest.raises(RuntimeError):
        conversion.to_degas(SourceImage.from_pil(sixteen_color_image))


def test_ste_colors_warn_in_stf_mode(caplog):
    pixels = np.full((200, 320, 3), 0x11, dtype=np.uint8)
    src = SourceImage.from_pil(Image.fromarray(pixels))
    with caplog.at_level(logging.WARNING):
        png_to_degas(src)
    assert "STe colors" in caplog.text

    caplog.clear()
    with caplog.at_level(logging.WARNING):
        png_to_degas(src, COLOR_MODES["ste"])
    assert "STe colors" not in caplog.text


def test_ste_palette_kept_in_ste_mode():
    img = pattern_image(320, 200, [(0x11, 0x22, 0x33), (0xFF, 0xFF, 0xFF)])
    src = SourceImage.from_pil(img)
    image = parse_degas(png_to_degas(src, COLOR_MODES["ste"]))
    assert [rol444(w) for w in image.palette[:2]] == [0x123, 0xFFF]
    back = degas_to_png(image, COLOR_MODES["ste"])
    assert np.array_equal(np.array(back.convert("RGB")), np.array(img))


def test_auto_output_path():
    assert str(auto_output_path("pics/cat.png", ".pi1")) == "cat.pi1"
    assert auto_output_path("pics/cat.png", ".pc1", same_dir=True).as_posix() == "pics/cat.pc1"
    assert str(auto_output_path("pics/noext", ".png")) == "noext.png"
    assert str(auto_output_path(".hidden", ".pi3")) == ".hidden.pi3"
