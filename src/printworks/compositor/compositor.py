"""Turn generated artwork into an exact-size, bordered, print-ready raster.

Pipeline
--------
For a print spec, border and DPI:

1. Derive the print size and border in pixels from millimetres.
2. The art box is the print size minus the border on every side.
3. Scale the source to fit entirely inside the art box, keeping its aspect
   ratio (letterbox, never crop).
4. Centre it in the art box on paper white.  When the leftover space is odd
   the extra pixel goes to the right/bottom.
5. Add the border on all four sides in the same paper white.
6. If rounding ever leaves the canvas off-size, resize to the exact print size.
7. Convert to sRGB and encode as lossless PNG with the DPI recorded.

The same inputs always produce byte-identical output.  Nothing in this
module touches the network; :class:`PrintCompositor` wraps it with the
source download and runs the CPU-heavy part off the event loop.

Failures are never papered over: an undecodable source raises
:class:`DecodeError` rather than shipping a placeholder on a paid order.
"""

from __future__ import annotations

import asyncio
import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache

import httpx
from PIL import Image, ImageCms, ImageOps, UnidentifiedImageError

from printworks.compositor.fetch import fetch_source_image
from printworks.compositor.print_specs import PrintSpec, get_print_spec, mm_to_px, round_half_up
from printworks.core.config import PrintworksConfig
from printworks.core.config import config as default_config
from printworks.core.exceptions import ConfigurationError, DecodeError

logger = logging.getLogger(__name__)

PAPER_WHITE = (255, 255, 255)

_ALPHA_MODES = ("RGBA", "LA", "PA", "RGBa", "La")

# Pillow decodes 16-bit greyscale (PNG, TIFF) into these without rescaling.
_WIDE_GREY_MODES = ("I;16", "I;16L", "I;16B", "I;16N", "I")


@dataclass(frozen=True)
class PrintLayout:
    """Pixel geometry of one print.

    Attributes:
        print_width: Final raster width
        print_height: Final raster height
        border_px: Border on each side
        art_width: Width available to the artwork
        art_height: Height available to the artwork
    """

    print_width: int
    print_height: int
    border_px: int
    art_width: int
    art_height: int


@dataclass(frozen=True)
class PrintAsset:
    """A finished print file, held in memory until it is uploaded."""

    order_ref: str
    size_id: str
    buffer: bytes
    width: int
    height: int
    filename: str


def compute_layout(print_spec: PrintSpec, border_mm: float, dpi: int) -> PrintLayout:
    """Work out print, border and art box sizes in pixels.

    Raises:
        ConfigurationError: If the border leaves no room for the artwork
    """
    print_width, print_height = print_spec.pixel_size(dpi)
    border_px = mm_to_px(border_mm, dpi)
    art_width = print_width - 2 * border_px
    art_height = print_height - 2 * border_px

    if art_width <= 0 or art_height <= 0:
        raise ConfigurationError(
            f"A {border_mm}mm border leaves no art area on {print_spec.size_id} at {dpi} dpi"
        )

    return PrintLayout(print_width, print_height, border_px, art_width, art_height)


def fit_inside(width: int, height: int, box_width: int, box_height: int) -> tuple[int, int]:
    """Largest size with the source aspect ratio that fits inside the box."""
    scale = min(box_width / width, box_height / height)
    fitted_width = min(box_width, max(1, round_half_up(width * scale)))
    fitted_height = min(box_height, max(1, round_half_up(height * scale)))
    return fitted_width, fitted_height


def centre_padding(inner: int, outer: int) -> tuple[int, int]:
    """Split ``outer - inner`` into leading and trailing padding, extra pixel trailing."""
    gap = outer - inner
    leading = gap // 2
    return leading, gap - leading


def decode_source(data: bytes) -> Image.Image:
    """Decode image bytes, applying any EXIF orientation.

    Raises:
        DecodeError: If the bytes are empty or not a readable image
    """
    if not data:
        raise DecodeError("Source image is empty")

    try:
        with Image.open(io.BytesIO(data)) as opened:
            opened.load()
            image = ImageOps.exif_transpose(opened)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        raise DecodeError(f"Source image could not be decoded: {e}") from e

    if image.width < 1 or image.height < 1:
        raise DecodeError(f"Source image has no pixels ({image.width}x{image.height})")
    return image


@lru_cache(maxsize=1)
def _srgb_profile() -> ImageCms.ImageCmsProfile:
    return ImageCms.ImageCmsProfile(ImageCms.createProfile("sRGB"))


def to_srgb(image: Image.Image) -> Image.Image:
    """Return an RGB image in sRGB, with any transparency flattened onto paper white.

    Embedded ICC profiles are converted with LittleCMS.  A profile that
    LittleCMS rejects is logged and the pixels are used as-is.  16-bit
    greyscale is scaled down to 8 bits; a plain conversion would clip it.
    """
    if image.mode in _WIDE_GREY_MODES:
        image = image.convert("I").point(lambda v: v * (1 / 256)).convert("L")

    icc = image.info.get("icc_profile")
    if icc and image.mode in ("RGB", "RGBA", "CMYK"):
        output_mode = "RGBA" if image.mode == "RGBA" else "RGB"
        try:
            image = ImageCms.profileToProfile(
                image,
                ImageCms.ImageCmsProfile(io.BytesIO(icc)),
                _srgb_profile(),
                outputMode=output_mode,
            )
        except (ImageCms.PyCMSError, OSError, ValueError) as e:
            logger.warning(f"Ignoring unusable embedded colour profile: {e}")

    has_alpha = image.mode in _ALPHA_MODES or (image.mode == "P" and "transparency" in image.info)
    if has_alpha:
        rgba = image.convert("RGBA")
        flattened = Image.new("RGB", rgba.size, PAPER_WHITE)
        flattened.paste(rgba, mask=rgba.getchannel("A"))
        return flattened

    return image.convert("RGB")


def encode_png(image: Image.Image, dpi: int) -> bytes:
    """Encode losslessly; PNG carries no timestamp unless asked, keeping output stable."""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", dpi=(dpi, dpi), compress_level=6, optimize=False)
    return buffer.getvalue()


def composite(
    source: bytes,
    print_spec: PrintSpec,
    border_mm: float = 10.0,
    dpi: int = 300,
    *,
    order_ref: str = "print",
) -> PrintAsset:
    """Composite source artwork into a print-ready PNG.

    Args:
        source: Encoded source image (any format Pillow reads)
        print_spec: Target product
        border_mm: Paper border on every side
        dpi: Print resolution; overrides ``print_spec.dpi``
        order_ref: Order the asset belongs to, used in the filename

    Returns:
        PrintAsset whose width and height equal the product's pixel size at ``dpi``

    Raises:
        DecodeError: If the source cannot be decoded
        ConfigurationError: If the border leaves no art area
    """
    layout = compute_layout(print_spec, border_mm, dpi)
    logger.info(
        f"[{order_ref}] Print {layout.print_width}x{layout.print_height}px, "
        f"art area {layout.art_width}x{layout.art_height}px with {layout.border_px}px border"
    )

    image = to_srgb(decode_source(source))

    fitted = fit_inside(image.width, image.height, layout.art_width, layout.art_height)
    if fitted != image.size:
        image = image.resize(fitted, Image.Resampling.LANCZOS)

    left, right = centre_padding(image.width, layout.art_width)
    top, bottom = centre_padding(image.height, layout.art_height)
    art = ImageOps.expand(image, border=(left, top, right, bottom), fill=PAPER_WHITE)

    canvas = ImageOps.expand(art, border=layout.border_px, fill=PAPER_WHITE)

    target = (layout.print_width, layout.print_height)
    if canvas.size != target:
        logger.warning(f"[{order_ref}] Canvas {canvas.size} drifted from {target}; resizing")
        canvas = canvas.resize(target, Image.Resampling.LANCZOS)

    buffer = encode_png(canvas, dpi)
    filename = f"{order_ref}_{print_spec.size_id}_print.png"
    logger.info(f"[{order_ref}] Print file generated: {filename} ({len(buffer)} bytes)")

    return PrintAsset(
        order_ref=order_ref,
        size_id=print_spec.size_id,
        buffer=buffer,
        width=canvas.width,
        height=canvas.height,
        filename=filename,
    )


class PrintCompositor:
    """Fetch an order's HD artwork and composite it for one or more products.

    Args:
        settings: Source of the default border, DPI and fetch timeout
        http_client: Optional shared ``httpx.AsyncClient``
    """

    def __init__(
        self,
        settings: PrintworksConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or default_config
        self._http_client = http_client

    async def _fetch(self, image_url: str) -> bytes:
        return await fetch_source_image(
            image_url,
            timeout=self._settings.fetch_timeout_seconds,
            client=self._http_client,
        )

    async def _composite(
        self,
        source: bytes,
        size_id: str,
        order_ref: str,
        border_mm: float | None,
        dpi: int | None,
    ) -> PrintAsset:
        spec = get_print_spec(size_id)
        return await asyncio.to_thread(
            composite,
            source,
            spec,
            self._settings.default_border_mm if border_mm is None else border_mm,
            dpi or self._settings.default_dpi,
            order_ref=order_ref,
        )

    async def generate_print_file(
        self,
        image_url: str,
        size_id: str,
        order_ref: str,
        *,
        border_mm: float | None = None,
        dpi: int | None = None,
    ) -> PrintAsset:
        """Download the artwork at ``image_url`` and build the print file for ``size_id``.

        Raises:
            ConfigurationError: Unknown size
            SourceFetchError: Download failed
            DecodeError: Download is not an image
        """
        get_print_spec(size_id)
        logger.info(f"[{order_ref}] Generating print file for {size_id}")
        source = await self._fetch(image_url)
        return await self._composite(source, size_id, order_ref, border_mm, dpi)

    async def generate_print_files(
        self,
        image_url: str,
        size_ids: Iterable[str],
        order_ref: str,
    ) -> dict[str, PrintAsset]:
        """Build print files for several sizes from a single download.

        Sizes are composited one after another to keep only one full-size
        raster in memory at a time.
        """
        size_ids = list(dict.fromkeys(size_ids))
        for size_id in size_ids:
            get_print_spec(size_id)

        source = await self._fetch(image_url)
        results: dict[str, PrintAsset] = {}
        for size_id in size_ids:
            results[size_id] = await self._composite(source, size_id, order_ref, None, None)
        return results
