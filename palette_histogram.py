# palette_histogram.py
"""
Colour usage chart: one bar per palette colour, painted in that colour,
with its pixel count as height.
"""

from io import BytesIO
from typing import Sequence

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from PIL import Image

from color_model import ColorModel
from palette_builder import PaletteEntry


def plot_palette_histogram(usage: Sequence[PaletteEntry], model: ColorModel,
                           width: int = 320, height: int = 200) -> Image.Image:
    fig, ax = plt.subplots(figsize=(width / 100, height / 100), dpi=100)
    counts = [e.count for e in usage]
    colors = ["#{:02x}{:02x}{:02x}".format(*model.rgb8(e.color)) for e in usage]
    ax.bar(range(len(usage)), counts, color=colors, edgecolor="#444444", linewidth=0.5)
    ax.set_xticks(range(len(usage)))
    ax.set_xticklabels([f"${e.color:03X}" for e in usage], rotation=90, fontsize=6)
    ax.set_ylim(0, max(counts) * 1.1 if counts else 1)
    ax.tick_params(axis="y", labelsize=6)
    buf = BytesIO()
    plt.savefig(buf, format="png", bbox_inches="tight", pad_inches=0.05)
    plt.close(fig)
    buf.seek(0)
    img = Image.open(buf)
    img.load()
    return img


def save_palette_histogram(usage: Sequence[PaletteEntry], model: ColorModel, path) -> None:
    plot_palette_histogram(usage, model).save(path, format="PNG")
