"""
converter.py — PNG <-> Degas conversion pipeline.

PNG -> Degas:  START -> SAMPLED -> PALETTE_BUILT -> PACKED -> ENCODED|RAW -> DONE
Degas -> PNG:  START -> UNPACKED -> PALETTE_BUILT -> DONE

A failure stops the pipeline where it is; the raised DegasError carries
that stage in ``err.stage``.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image

import bitplane_codec
from color_model import ColorMode, ColorModel, DEFAULT_MODE, rol444
from degas_errors import DegasError
from degas_formats import compression_from_path, format_for_size
from degas_image import DegasImage, load_image
from palette_builder import MONO_COLORS, Palette, PaletteEntry, build_palette
from palette_histogram import save_palette_histogram
from pixel_sampler import SourceImage, describe_palette, sample_image, sampler_for

logger = logging.getLogger(__name__)


class Stage(Enum):
    START = "start"
    SAMPLED = "pixels sampled"
    PALETTE_BUILT = "palette built"
    PACKED = "packed"
    ENCODED = "rle encoded"
    RAW = "raw"
    UNPACKED = "unpacked"
    DONE = "done"


@dataclass
class ConversionOptions:
    mode: ColorMode = DEFAULT_MODE
    compress: Optional[bool] = None   # None: from the output extension, else raw
    same_dir: bool = False
    histogram: Optional[Path] = None


class Conversion:
    """Carries one image through the pipeline; build a new one per image."""

    def __init__(self, mode: ColorMode = DEFAULT_MODE):
        self.model = ColorModel(mode)
        self.stage = Stage.START
        self.palette: Optional[Palette] = None
        self.usage: List[PaletteEntry] = []

    def _advance(self, stage: Stage) -> None:
        logger.debug("stage: %s -> %s", self.stage.value, stage.value)
        self.stage = stage

    @contextmanager
    def _running(self):
        if self.stage is not Stage.START:
            raise RuntimeError(f"conversion already ran (stage: {self.stage.value})")
        try:
            yield
        except DegasError as err:
            if err.stage is None:
                err.stage = self.stage
            logger.debug("failed after stage %s: %s", self.stage.value, err)
            raise
        self._advance(Stage.DONE)

    # ---- PNG -> Degas ----
    def to_degas(self, source: SourceImage, compressed: bool = False) -> Tuple[DegasImage, bytes]:
        with self._running():
            fmt = format_for_size(source.width, source.height, compressed)
            sampler = sampler_for(source, self.model)
            describe_palette(source, self.model)

            samples, seen = sample_image(sampler)
            if self.model.loses_ste_bits(seen):
                self.model.warn_ste("source image")
            self._advance(Stage.SAMPLED)

            self.palette = build_palette(samples, fmt)
            self.usage = list(self.palette.entries)
            self._advance(Stage.PALETTE_BUILT)

            indices = self.palette.index_matrix(samples)
            image = DegasImage(fmt, self.palette.words(), bitplane_codec.pack(indices, fmt.log2_planes))
            self._advance(Stage.PACKED)

            data = image.to_bytes()
            self._advance(Stage.ENCODED if fmt.compressed else Stage.RAW)
        return image, data

    # ---- Degas -> PNG ----
    def to_png(self, image: DegasImage) -> Image.Image:
        with self._running():
            fmt = image.format
            indices = bitplane_codec.unpack(image.pixels, fmt.width, fmt.height, fmt.log2_planes)
            self._advance(Stage.UNPACKED)

            words = image.palette[:fmt.palette_size]
            if self.model.palette_has_ste_bits(words):
                self.model.warn_ste(f"{fmt.name} palette")
            counts = np.bincount(indices.ravel(), minlength=fmt.max_colors)
            if fmt.palette_size:
                colors = [rol444(w) for w in words]
            else:
                colors = list(MONO_COLORS)
            self.usage = [PaletteEntry(colors[i], int(n)) for i, n in enumerate(counts) if n]
            self._advance(Stage.PALETTE_BUILT)

            if fmt.palette_size:
                img = Image.fromarray(indices)
                flat = []
                for c in colors:
                    flat.extend(self.model.rgb8(c))
                img.putpalette(flat)
            else:
                # bit set = ink (black), clear = paper (white)
                img = Image.fromarray(np.where(indices == 0, 255, 0).astype(np.uint8))
        return img


def png_to_degas(source: SourceImage, mode: ColorMode = DEFAULT_MODE,
                 compressed: bool = False) -> bytes:
    return Conversion(mode).to_degas(source, compressed)[1]


def degas_to_png(image: DegasImage, mode: ColorMode = DEFAULT_MODE) -> Image.Image:
    return Conversion(mode).to_png(image)


# ---------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------
def auto_output_path(input_path, suffix: str, same_dir: bool = False) -> Path:
    """Input name (with its directory when ``same_dir``) with a new extension."""
    src = Path(input_path)
    base = src if same_dir else Path(src.name)
    if base.suffix:
        return base.with_suffix(suffix)
    return base.with_name(base.name + suffix)


def convert_file(input_path, output_path=None, options: Optional[ConversionOptions] = None):
    """Convert one file in whichever direction its content calls for.

    Returns ``(output_path, conversion)``.
    """
    options = options or ConversionOptions()
    input_path = Path(input_path)
    conversion = Conversion(options.mode)

    try:
        img = load_image(input_path)
    except DegasError as err:
        err.stage = Stage.START
        raise

    if isinstance(img, SourceImage):
        logger.info('input: "%s" %dx%dx%d type:PNG-%s chans:%d lut:%d',
                    input_path.name, img.width, img.height, img.bit_depth,
                    img.color_type.value, img.channels, len(img.palette or ()))
        compress = options.compress
        if compress is None:
            compress = bool(output_path and compression_from_path(output_path))
        image, data = conversion.to_degas(img, compress)
        if output_path is None:
            output_path = auto_output_path(input_path, image.format.extension, options.same_dir)
        output_path = Path(output_path)
        output_path.write_bytes(data)
        logger.info('output: "%s" %dx%dx%d size:%d', output_path, image.width,
                    image.height, image.format.max_colors, len(data))
    else:
        fmt = img.format
        logger.info('input: "%s" %dx%dx%d type:%s', input_path.name,
                    fmt.width, fmt.height, fmt.max_colors, fmt.name)
        png = conversion.to_png(img)
        if output_path is None:
            output_path = auto_output_path(input_path, ".png", options.same_dir)
        output_path = Path(output_path)
        png.save(output_path, format="PNG")
        logger.info('output: "%s" %dx%d mode:%s', output_path, png.width, png.height, png.mode)

    if options.histogram:
        save_palette_histogram(conversion.usage, conversion.model, options.histogram)
        logger.info('histogram: "%s"', options.histogram)
    return output_path, conversion
