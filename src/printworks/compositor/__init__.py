"""Print compositing: conform generated artwork to a physical print product."""

from printworks.compositor.compositor import (
    PAPER_WHITE,
    PrintAsset,
    PrintCompositor,
    PrintLayout,
    centre_padding,
    composite,
    compute_layout,
    decode_source,
    fit_inside,
)
from printworks.compositor.fetch import fetch_source_image
from printworks.compositor.print_specs import (
    PRINT_SPECS,
    PrintSpec,
    choose_print_size,
    get_print_spec,
    mm_to_px,
    round_half_up,
)

__all__ = [
    "PAPER_WHITE",
    "PRINT_SPECS",
    "PrintAsset",
    "PrintCompositor",
    "PrintLayout",
    "PrintSpec",
    "centre_padding",
    "choose_print_size",
    "composite",
    "compute_layout",
    "decode_source",
    "fetch_source_image",
    "fit_inside",
    "get_print_spec",
    "mm_to_px",
    "round_half_up",
]
