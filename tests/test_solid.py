"""
Tests for the solid mesh builder.

Tests cover:
- Triangle counts and generation order
- Quad splitting and per-quad normals
- Closure: edge pairing, outward winding, enclosed volume
- The 2x2 mid-gray reference case
- Precondition checks
"""

import pytest
import numpy as np

from lithophoto.common.config import LithophaneConfig
from lithophoto.common.errors import ArgumentError, InputError
from lithophoto.common.io import PixelGrid
from lithophoto.common.mesh_ops import directed_edge_mismatches, signed_volume
from lithophoto.geometry import point3
from lithophoto.heightfield import sample_height_field
from lithophoto.solid import (
    build_solid,
    build_back_face,
    expected_triangle_count,
    image_to_mesh,
    quad_normal,
    quad_triangles,
    quad_triangles_with_normal,
)


# ============== Fixtures ==============

@pytest.fixture
def mid_gray_config():
    return LithophaneConfig(mesh_width=10.0, thickness=2.0, contrast=0.5)


@pytest.fixture
def mid_gray_mesh(mid_gray_config):
    return image_to_mesh(PixelGrid.filled(2, 2, (128, 128, 128)), mid_gray_config)


@pytest.fixture
def random_grid():
    """Deterministic 6 wide x 4 tall random image."""
    rng = np.random.default_rng(7)
    return PixelGrid(rng.integers(0, 256, size=(4, 6, 3), dtype=np.uint8))


@pytest.fixture
def random_mesh(random_grid):
    config = LithophaneConfig(mesh_width=12.0, thickness=1.0, contrast=0.5)
    return image_to_mesh(random_grid, config)


# ============== Quad Helpers ==============

class TestQuadHelpers:
    """Test quad splitting."""

    def test_split_uses_q0_q2_diagonal(self):
        q = [point3(0, 0, 0), point3(1, 0, 0), point3(1, 1, 0), point3(0, 1, 0)]
        mesh = quad_triangles(*q)

        assert len(mesh) == 2
        np.testing.assert_array_equal(mesh.vertices[0], [q[0], q[1], q[2]])
        np.testing.assert_array_equal(mesh.vertices[1], [q[0], q[2], q[3]])

    def test_computed_normal_shared(self):
        q = [point3(0, 0, 0), point3(2, 0, 0), point3(2, 3, 0), point3(0, 3, 0)]
        mesh = quad_triangles(*q)

        np.testing.assert_array_equal(mesh.normals[0], [0, 0, 6])
        np.testing.assert_array_equal(mesh.normals[1], [0, 0, 6])

    def test_quad_normal_not_normalized(self):
        n = quad_normal(point3(0, 0, 0), point3(0, 2, 0), point3(0, 0, 2))
        np.testing.assert_array_equal(n, [4, 0, 0])

    def test_fixed_normal_kept(self):
        q = [point3(0, 0, 0), point3(1, 0, 0), point3(1, 1, 0), point3(0, 1, 0)]
        mesh = quad_triangles_with_normal(*q, normal=point3(0, 0, -1))

        np.testing.assert_array_equal(mesh.normals, [[0, 0, -1], [0, 0, -1]])

    def test_vectorized_quads_stay_paired(self):
        q0 = np.array([[0, 0, 0], [10, 0, 0]], dtype=np.float32)
        offsets = [np.array([1, 0, 0]), np.array([1, 1, 0]), np.array([0, 1, 0])]
        mesh = quad_triangles(q0, *(q0 + o for o in offsets))

        assert len(mesh) == 4
        np.testing.assert_array_equal(mesh.vertices[2][0], [10, 0, 0])
        np.testing.assert_array_equal(mesh.vertices[3][0], [10, 0, 0])


# ============== Counts and Order ==============

class TestTriangleCount:

    @pytest.mark.parametrize("width,height", [(2, 2), (2, 5), (5, 2), (6, 4), (9, 9)])
    def test_count_formula(self, width, height):
        grid = PixelGrid.filled(width, height, (90, 60, 30))
        mesh = image_to_mesh(grid, LithophaneConfig(mesh_width=20.0, thickness=2.0))

        expected = 2 * (width - 1) * (height - 1) + 2 + 4 * (width - 1) + 4 * (height - 1)
        assert len(mesh) == expected
        assert expected_triangle_count(width, height) == expected

    def test_mid_gray_has_twelve(self, mid_gray_mesh):
        assert len(mid_gray_mesh) == 12


class TestGenerationOrder:
    """Front row-major, back, walls by column, walls by row."""

    def test_front_face_row_major(self, random_grid):
        field = sample_height_field(random_grid, 12.0, 1.0, 0.5)
        mesh = build_solid(field, 12.0)

        # Second cell of the first row starts at field[0, 1]
        np.testing.assert_array_equal(mesh.vertices[2][0], field[0, 1])
        # First cell of the second row starts at field[1, 0]
        np.testing.assert_array_equal(mesh.vertices[2 * 5][0], field[1, 0])
        assert np.all(mesh.normals[:2 * 5 * 3, 2] > 0)

    def test_back_face_follows_front(self, random_mesh):
        n_front = 2 * 5 * 3
        np.testing.assert_array_equal(random_mesh.normals[n_front:n_front + 2], [[0, 0, -1]] * 2)
        np.testing.assert_array_equal(random_mesh.vertices[n_front:n_front + 2, :, 2], 0.0)

    def test_column_walls_then_row_walls(self, random_mesh):
        start = 2 * 5 * 3 + 2
        column_walls = random_mesh.normals[start:start + 4 * 5]
        row_walls = random_mesh.normals[start + 4 * 5:]

        expected_column = np.tile([[0, -1, 0], [0, -1, 0], [0, 1, 0], [0, 1, 0]], (5, 1))
        expected_row = np.tile([[-1, 0, 0], [-1, 0, 0], [1, 0, 0], [1, 0, 0]], (3, 1))
        np.testing.assert_array_equal(column_walls, expected_column)
        np.testing.assert_array_equal(row_walls, expected_row)

    def test_deterministic(self, random_grid):
        config = LithophaneConfig(mesh_width=12.0, thickness=1.0, contrast=0.5)
        a = image_to_mesh(random_grid, config)
        b = image_to_mesh(random_grid, config)

        np.testing.assert_array_equal(a.normals, b.normals)
        np.testing.assert_array_equal(a.vertices, b.vertices)


# ============== Closure ==============

class TestClosedSolid:
    """The solid must be closed with outward winding."""

    def test_two_by_two_edges_pair_exactly(self, mid_gray_mesh):
        assert directed_edge_mismatches(mid_gray_mesh) == []

    def test_uniform_two_by_two_edges_pair_exactly(self):
        mesh = image_to_mesh(PixelGrid.filled(2, 2, (0, 0, 0)), LithophaneConfig(10.0, 3.0, 0.2))
        assert directed_edge_mismatches(mesh) == []

    def test_relief_and_wall_edges_pair(self, random_mesh):
        """Off the back plane every edge has exactly one opposite partner."""
        assert directed_edge_mismatches(random_mesh, skip_plane_z=0.0) == []

    def test_back_cap_covers_wall_bottoms(self, random_mesh):
        """Wall bottom edges lie on the back cap's perimeter."""
        walls = random_mesh[2 * 5 * 3 + 2:]
        bottoms = walls.vertices[walls.vertices[..., 2] == 0.0]

        assert bottoms[:, 0].min() == 0.0
        assert bottoms[:, 1].min() == 0.0
        assert bottoms[:, 0].max() == pytest.approx(10.0)
        assert bottoms[:, 1].max() == pytest.approx(6.0)
        on_edge = (
            (bottoms[:, 0] == 0.0) | (bottoms[:, 1] == 0.0)
            | np.isclose(bottoms[:, 0], 10.0) | np.isclose(bottoms[:, 1], 6.0)
        )
        assert np.all(on_edge)

    def test_winding_matches_normals(self, random_mesh):
        """Winding normal points the same way as the stored normal."""
        v = random_mesh.vertices.astype(np.float64)
        winding = np.cross(v[:, 1] - v[:, 0], v[:, 2] - v[:, 0])
        dots = np.einsum("ij,ij->i", winding, random_mesh.normals)

        assert np.all(dots > 0)

    def test_uniform_slab_volume(self):
        """6x4 px at 12 mm wide: footprint 10 x 6 mm."""
        grid = PixelGrid.filled(6, 4, (255, 255, 255))
        mesh = image_to_mesh(grid, LithophaneConfig(mesh_width=12.0, thickness=2.0, contrast=0.0))

        assert signed_volume(mesh) == pytest.approx(10.0 * 6.0 * 2.0, rel=1e-5)

    def test_relief_volume_positive_and_bounded(self, random_mesh):
        volume = signed_volume(random_mesh)
        assert 0.5 * 10.0 * 6.0 <= volume <= 1.0 * 10.0 * 6.0


# ============== Reference Case ==============

class TestMidGrayReference:
    """2x2 mid-gray, width 10, thickness 2, contrast 0.5."""

    def test_front_depth(self, mid_gray_mesh):
        front = mid_gray_mesh.vertices[:2]
        np.testing.assert_allclose(front[..., 2], 1.4980392, atol=1e-5)

    def test_footprint(self, mid_gray_mesh):
        back = mid_gray_mesh.vertices[2:4].reshape(-1, 3)
        assert back[:, 0].max() == pytest.approx(5.0)
        assert back[:, 1].max() == pytest.approx(5.0)

    def test_back_face_corners(self):
        back = build_back_face(2, 2, 10.0)
        np.testing.assert_array_equal(
            back.vertices[0], [[0, 0, 0], [0, 5, 0], [5, 5, 0]]
        )
        np.testing.assert_array_equal(
            back.vertices[1], [[0, 0, 0], [5, 5, 0], [5, 0, 0]]
        )


# ============== Preconditions ==============

class TestPreconditions:

    def test_one_pixel_wide_rejected(self):
        grid = PixelGrid.filled(1, 5, (10, 10, 10))
        with pytest.raises(InputError):
            image_to_mesh(grid, LithophaneConfig())

    def test_one_pixel_tall_rejected(self):
        grid = PixelGrid.filled(5, 1, (10, 10, 10))
        with pytest.raises(InputError):
            image_to_mesh(grid, LithophaneConfig())

    def test_build_solid_rejects_thin_field(self):
        field = np.zeros((1, 4, 3), dtype=np.float32)
        with pytest.raises(InputError):
            build_solid(field, 10.0)

    def test_invalid_config_rejected(self):
        grid = PixelGrid.filled(3, 3, (10, 10, 10))
        with pytest.raises(ArgumentError):
            image_to_mesh(grid, LithophaneConfig(contrast=1.5))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
