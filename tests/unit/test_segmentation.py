"""
Tests for connected-component glyph segmentation.
"""

import numpy as np
import pytest

from core.exceptions import InvalidArgumentError, InvalidDimensionsError
from core.segmentation import (
    TARGET_SIZE,
    GlyphRegion,
    compare_reading_order,
    extract_and_normalize,
    extract_glyphs,
    find_connected_component,
    segment_characters,
    sort_in_reading_order,
)
from tests.conftest import make_buffer


def make_v(width: int = 20, height: int = 16) -> np.ndarray:
    """V shape whose top row does not span the whole glyph."""
    image = np.zeros((height, width), dtype=np.float32)
    for row in range(15):
        left = 2 + row // 2
        right = 17 - row // 2
        image[row, left:left + 2] = 1.0
        image[row, right:right + 2] = 1.0
    return image.reshape(-1)


class TestGlyphRegion:
    """Tests for the region value type."""

    def test_non_positive_size_raises(self):
        """Regions must have positive width and height."""
        with pytest.raises(InvalidArgumentError):
            GlyphRegion(0, 0, 0, 5)
        with pytest.raises(InvalidArgumentError):
            GlyphRegion(0, 0, 5, -1)

    def test_valid_size_threshold(self):
        """Regions smaller than 5x5 are noise."""
        assert GlyphRegion(0, 0, 5, 5).is_valid_size()
        assert not GlyphRegion(0, 0, 4, 10).is_valid_size()
        assert not GlyphRegion(0, 0, 10, 4).is_valid_size()

    def test_accessors(self):
        """Area, tuple and dict views agree."""
        region = GlyphRegion(3, 4, 6, 7)
        assert region.area == 42
        assert region.as_tuple() == (3, 4, 6, 7)
        assert region.to_dict() == {'x': 3, 'y': 4, 'width': 6, 'height': 7}


class TestReadingOrder:
    """Tests for the reading order comparator."""

    def test_rows_beyond_tolerance_order_by_y(self):
        """A higher region comes first even when it is further right."""
        upper = GlyphRegion(5, 0, 5, 5)
        lower = GlyphRegion(0, 15, 5, 5)
        assert compare_reading_order(upper, lower) < 0
        assert sort_in_reading_order([lower, upper]) == [upper, lower]

    def test_same_line_orders_by_x(self):
        """Tops within the tolerance share a line."""
        left = GlyphRegion(0, 8, 5, 5)
        right = GlyphRegion(20, 0, 5, 5)
        assert compare_reading_order(right, left) > 0
        assert sort_in_reading_order([right, left]) == [left, right]

    def test_equal_regions_compare_equal(self):
        """Identical positions compare as zero."""
        region = GlyphRegion(1, 1, 5, 5)
        assert compare_reading_order(region, GlyphRegion(1, 1, 6, 6)) == 0


class TestSegmentCharacters:
    """Tests for segmentation."""

    def test_two_squares(self, two_squares):
        """Two separated squares yield two regions, left to right."""
        buffer, width, height = two_squares
        regions = segment_characters(buffer, width, height)

        assert len(regions) == 2
        assert regions[0].x < regions[1].x
        for region in regions:
            assert abs(region.width - 10) <= 1
            assert abs(region.height - 10) <= 1
        assert regions[0].as_tuple() == (2, 2, 10, 10)

    def test_single_pixel_is_noise(self, single_pixel):
        """Components below the minimum size are discarded."""
        buffer, width, height = single_pixel
        assert segment_characters(buffer, width, height) == []

    def test_blank_image(self):
        """No foreground means no regions."""
        assert segment_characters(make_buffer(8, 8), 8, 8) == []

    def test_faint_pixels_are_background(self):
        """Values below the threshold are not ink."""
        buffer = make_buffer(10, 10, [(1, 1, 8, 8)], value=0.05)
        assert segment_characters(buffer, 10, 10) == []

    def test_diagonal_pixels_connect(self):
        """Components are 8-connected."""
        buffer = make_buffer(12, 12, [(0, 0, 5, 5), (5, 5, 5, 5)])
        regions = segment_characters(buffer, 12, 12)
        assert [r.as_tuple() for r in regions] == [(0, 0, 10, 10)]

    def test_v_shape_is_one_region(self):
        """A glyph wider below its top row is found whole, exactly once."""
        regions = segment_characters(make_v(), 20, 16)
        assert [r.as_tuple() for r in regions] == [(2, 0, 17, 15)]

    def test_multiple_lines(self):
        """Regions on a lower line follow every region on the upper line."""
        buffer = make_buffer(40, 40, [(25, 2, 6, 6), (2, 3, 6, 6), (2, 25, 6, 6)])
        regions = segment_characters(buffer, 40, 40)
        assert [(r.x, r.y) for r in regions] == [(2, 3), (25, 2), (2, 25)]

    def test_dimension_mismatch_raises(self):
        """Buffer length must match the dimensions."""
        with pytest.raises(InvalidDimensionsError):
            segment_characters([0.0] * 10, 4, 4)

    def test_find_connected_component_marks_visited(self):
        """Every pixel of the component is marked visited."""
        buffer = make_buffer(8, 8, [(1, 1, 3, 2)])
        foreground = buffer > 0.1
        visited = np.zeros(buffer.size, dtype=bool)

        region = find_connected_component(foreground, visited, 1, 1, 8, 8)

        assert region.as_tuple() == (1, 1, 3, 2)
        np.testing.assert_array_equal(visited, foreground)


class TestNormalization:
    """Tests for glyph extraction and resampling."""

    def test_output_geometry(self, two_squares):
        """Glyphs are 28x28 with an empty 2-pixel border."""
        buffer, width, height = two_squares
        glyph = extract_and_normalize(buffer, width, height, GlyphRegion(2, 2, 10, 10))

        assert glyph.shape == (TARGET_SIZE * TARGET_SIZE,)
        grid = glyph.reshape(TARGET_SIZE, TARGET_SIZE)
        assert grid[:2].max() == 0.0
        assert grid[-2:].max() == 0.0
        assert grid[:, :2].max() == 0.0
        assert grid[:, -2:].max() == 0.0
        assert grid[14, 14] == pytest.approx(1.0)
        assert glyph.min() >= 0.0 and glyph.max() <= 1.0

    def test_bilinear_blend_between_columns(self):
        """A fractional source column mixes its two neighbours by distance."""
        ramp = np.tile(np.arange(10, dtype=np.float32) / 10, (5, 1)).reshape(-1)
        glyph = extract_and_normalize(ramp, 10, 5, GlyphRegion(0, 0, 5, 5))
        grid = glyph.reshape(TARGET_SIZE, TARGET_SIZE)

        # Inner column 7 samples x = 7 * 5 / 24, between columns 1 and 2
        dx = 7 * 5 / 24 - 1
        assert grid[2, 2 + 7] == pytest.approx((1 - dx) * 0.1 + dx * 0.2, abs=1e-6)

    def test_right_edge_sample_clamped(self):
        """The neighbour beyond the last column reuses the last column."""
        ramp = np.tile(np.arange(10, dtype=np.float32) / 10, (5, 1)).reshape(-1)
        glyph = extract_and_normalize(ramp, 10, 5, GlyphRegion(5, 0, 5, 5))
        grid = glyph.reshape(TARGET_SIZE, TARGET_SIZE)

        # Inner column 23 samples x = 5 + 23 * 5 / 24, between column 9 and the edge
        assert grid[2, 2 + 23] == pytest.approx(0.9, abs=1e-6)

    def test_bottom_edge_sample_clamped(self):
        """The neighbour below the last row reuses the last row."""
        ramp = np.tile(np.arange(10, dtype=np.float32)[:, None] / 10, (1, 5)).reshape(-1)
        glyph = extract_and_normalize(ramp, 5, 10, GlyphRegion(0, 5, 5, 5))
        grid = glyph.reshape(TARGET_SIZE, TARGET_SIZE)

        assert grid[2 + 23, 2] == pytest.approx(0.9, abs=1e-6)
        dy = 5 + 5 * 5 / 24 - 6
        assert grid[2 + 5, 2] == pytest.approx((1 - dy) * 0.6 + dy * 0.7, abs=1e-6)

    def test_region_at_image_edge(self):
        """Samples beyond the image read as zero instead of failing."""
        buffer = make_buffer(10, 10, [(5, 5, 5, 5)])
        glyph = extract_and_normalize(buffer, 10, 10, GlyphRegion(5, 5, 5, 5))
        assert glyph.max() == pytest.approx(1.0)

    def test_padding_consumes_target(self):
        """No room inside the padding yields an empty glyph."""
        glyph = extract_and_normalize(make_buffer(6, 6, [(0, 0, 6, 6)]), 6, 6,
                                      GlyphRegion(0, 0, 6, 6), target_size=4, padding=2)
        assert glyph.shape == (16,)
        assert glyph.max() == 0.0

    def test_none_region_raises(self):
        """A region is required."""
        with pytest.raises(InvalidArgumentError):
            extract_and_normalize(make_buffer(4, 4), 4, 4, None)

    def test_extract_glyphs_pairs_in_order(self, two_squares):
        """Regions come back with their glyphs in reading order."""
        buffer, width, height = two_squares
        pairs = extract_glyphs(buffer, width, height)

        assert [region.x for region, _ in pairs] == [2, 25]
        assert all(glyph.size == TARGET_SIZE * TARGET_SIZE for _, glyph in pairs)
