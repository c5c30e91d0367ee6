"""Physical print products and their pixel geometry.

Pixel sizes are never stored: they are derived from millimetres and DPI with
``round_half_up(mm * dpi / 25.4)``, so the same product at the same DPI
always has the same raster size.

==============  ============  ===============  ==============
Size            mm (w × h)    px @ 300 dpi     SKU
==============  ============  ===============  ==============
A4              210 × 297     2480 × 3508      GLOBAL-FAP-A4
A3              297 × 420     3508 × 4961      GLOBAL-FAP-A3
SQUARE_8X8      203 × 203     2398 × 2398      GLOBAL-FAP-8X8
SQUARE_10X10    254 × 254     3000 × 3000      GLOBAL-FAP-10X10
==============  ============  ===============  ==============
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal

from printworks.core.exceptions import ConfigurationError

MM_PER_INCH = 25.4

Aspect = Literal["square", "A3_portrait", "A3_landscape", "A2_portrait"]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    ``round()`` rounds halves to even, which would make pixel sizes depend on
    the parity of the result.
    """
    return int(math.floor(value + 0.5))


def mm_to_px(mm: float, dpi: int) -> int:
    """Convert a physical length to whole pixels at ``dpi``."""
    return round_half_up(mm * dpi / MM_PER_INCH)


@dataclass(frozen=True)
class PrintSpec:
    """A physical print product.

    Attributes:
        size_id: Catalog key (e.g. ``"A4"``)
        width_mm: Paper width in millimetres
        height_mm: Paper height in millimetres
        dpi: Print resolution
        sku: Print lab product code
        name: Display name
        retail_price_pence: Retail price
        description: Paper and finish
    """

    size_id: str
    width_mm: float
    height_mm: float
    dpi: int
    sku: str
    name: str = ""
    retail_price_pence: int = 0
    description: str = ""

    def pixel_size(self, dpi: int | None = None) -> tuple[int, int]:
        """Return ``(width, height)`` in pixels at ``dpi`` (default: the product's own)."""
        dpi = dpi or self.dpi
        return mm_to_px(self.width_mm, dpi), mm_to_px(self.height_mm, dpi)

    @property
    def pixel_width(self) -> int:
        return self.pixel_size()[0]

    @property
    def pixel_height(self) -> int:
        return self.pixel_size()[1]


_FINE_ART = "Premium matte fine art print on archival paper (>=200gsm)"

PRINT_SPECS: Mapping[str, PrintSpec] = MappingProxyType(
    {
        "A4": PrintSpec(
            size_id="A4",
            width_mm=210,
            height_mm=297,
            dpi=300,
            sku="GLOBAL-FAP-A4",
            name="A4 Fine Art Print",
            retail_price_pence=3999,
            description=_FINE_ART,
        ),
        "A3": PrintSpec(
            size_id="A3",
            width_mm=297,
            height_mm=420,
            dpi=300,
            sku="GLOBAL-FAP-A3",
            name="A3 Fine Art Print",
            retail_price_pence=5999,
            description=_FINE_ART,
        ),
        "SQUARE_8X8": PrintSpec(
            size_id="SQUARE_8X8",
            width_mm=203,
            height_mm=203,
            dpi=300,
            sku="GLOBAL-FAP-8X8",
            name='8x8" Square Print',
            retail_price_pence=3499,
            description="Premium square matte print on archival paper (>=200gsm)",
        ),
        "SQUARE_10X10": PrintSpec(
            size_id="SQUARE_10X10",
            width_mm=254,
            height_mm=254,
            dpi=300,
            sku="GLOBAL-FAP-10X10",
            name='10x10" Square Print',
            retail_price_pence=4499,
            description="Premium large square matte print on archival paper (>=200gsm)",
        ),
    }
)


def get_print_spec(size_id: str) -> PrintSpec:
    """Look up a product by size id.

    Raises:
        ConfigurationError: If the size is not in the catalog
    """
    try:
        return PRINT_SPECS[size_id]
    except KeyError:
        available = ", ".join(PRINT_SPECS)
        raise ConfigurationError(
            f"Print size '{size_id}' not found. Available sizes: {available}"
        ) from None


def choose_print_size(aspect: Aspect | str, preferred: str | None = None) -> str:
    """Pick a default print size for a generation aspect.

    An explicit customer choice always wins.  Squares and portraits default
    to A4, landscapes to A3.
    """
    if preferred:
        return get_print_spec(preferred).size_id
    if aspect in ("square", "A3_portrait"):
        return "A4"
    return "A3"
