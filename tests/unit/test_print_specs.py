"""Tests for printworks.compositor.print_specs — product geometry."""

from __future__ import annotations

import pytest

from printworks.compositor import PRINT_SPECS, choose_print_size, get_print_spec, mm_to_px, round_half_up
from printworks.core.exceptions import ConfigurationError


class TestRounding:
    @pytest.mark.parametrize(
        "value, expected",
        [(0.5, 1), (1.5, 2), (2.5, 3), (2.49, 2), (117.6, 118), (3507.87, 3508)],
    )
    def test_round_half_up(self, value, expected):
        """Halves should round up, not to even."""
        assert round_half_up(value) == expected

    def test_border_at_300_dpi(self):
        """A 10mm border is 118 pixels at 300 DPI."""
        assert mm_to_px(10, 300) == 118


class TestPrintSpecs:
    @pytest.mark.parametrize(
        "size_id, expected",
        [
            ("A4", (2480, 3508)),
            ("A3", (3508, 4961)),
            ("SQUARE_8X8", (2398, 2398)),
            ("SQUARE_10X10", (3000, 3000)),
        ],
    )
    def test_pixel_sizes_at_300_dpi(self, size_id, expected):
        """Each product has its print partner's pixel size at 300 DPI."""
        assert get_print_spec(size_id).pixel_size() == expected

    def test_pixel_size_follows_dpi(self):
        """Pixel sizes scale with the DPI."""
        spec = get_print_spec("A4")
        assert spec.pixel_size(150) == (mm_to_px(210, 150), mm_to_px(297, 150))
        assert spec.pixel_size(150) != spec.pixel_size()

    def test_width_and_height_properties(self):
        """pixel_width and pixel_height match pixel_size()."""
        spec = get_print_spec("A3")
        assert (spec.pixel_width, spec.pixel_height) == spec.pixel_size()

    def test_catalog_details(self):
        """Products carry their SKU, price and DPI."""
        a4 = get_print_spec("A4")
        assert a4.sku == "GLOBAL-FAP-A4"
        assert a4.retail_price_pence == 3999
        assert all(spec.dpi == 300 for spec in PRINT_SPECS.values())

    def test_catalog_is_read_only(self):
        """The product catalog cannot be modified."""
        with pytest.raises(TypeError):
            PRINT_SPECS["A5"] = PRINT_SPECS["A4"]  # type: ignore[index]

    def test_unknown_size(self):
        """An unknown size lists the available ones."""
        with pytest.raises(ConfigurationError, match="Available sizes"):
            get_print_spec("A0")


class TestChoosePrintSize:
    @pytest.mark.parametrize(
        "aspect, expected",
        [("square", "A4"), ("A3_portrait", "A4"), ("A3_landscape", "A3"), ("A2_portrait", "A3")],
    )
    def test_defaults_by_aspect(self, aspect, expected):
        """Each aspect has a default product."""
        assert choose_print_size(aspect) == expected

    def test_preference_wins(self):
        """A valid preferred size overrides the default."""
        assert choose_print_size("A3_landscape", preferred="SQUARE_8X8") == "SQUARE_8X8"

    def test_unknown_preference(self):
        """An unknown preferred size is rejected."""
        with pytest.raises(ConfigurationError):
            choose_print_size("square", preferred="poster")
