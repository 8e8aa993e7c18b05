import math
import random

import numpy as np
import pytest

from pfa_geometry.errors import InvalidParameterError
from pfa_geometry.geometry_parsing.polygon_math import (
    fill_angle_vector,
    get_maximum_radius,
    get_maximum_radius_array,
    get_maximum_radius_cached,
    is_valid_symmetry_order,
    polygon_vertices,
)


def test_cached_matches_direct_computation():
    rng = random.Random(42)
    for symmetry_order in (3, 4, 5, 8, 12, 16):
        for phi0 in (0.0, 0.1, math.pi / symmetry_order, -0.7):
            angles = fill_angle_vector(symmetry_order, phi0)
            for _ in range(50):
                x = rng.uniform(-5000.0, 5000.0)
                y = rng.uniform(-5000.0, 5000.0)
                assert get_maximum_radius_cached(angles, x, y) == get_maximum_radius(symmetry_order, phi0, x, y)


def test_square_returns_apothem_on_face():
    width = 1234.5
    assert get_maximum_radius(4, 0.0, width, 0.0) == width
    for x in (0.0, 100.0, 617.25, width):
        assert get_maximum_radius(4, 0.0, x, 0.0) == pytest.approx(x)
    for y in (-width, -300.0, 0.0, 300.0, width):
        assert get_maximum_radius(4, 0.0, width, y) == pytest.approx(width)


def test_even_order_is_centrally_symmetric():
    for symmetry_order in (4, 6, 8, 12):
        for x, y in ((100.0, 20.0), (-350.0, 710.0), (0.0, -42.0)):
            assert get_maximum_radius(symmetry_order, 0.3, -x, -y) == pytest.approx(
                get_maximum_radius(symmetry_order, 0.3, x, y))


def test_rotation_by_one_sector_is_invariant():
    symmetry_order = 8
    step = 2 * math.pi / symmetry_order
    x, y = 870.0, 230.0
    rotated_x = x * math.cos(step) - y * math.sin(step)
    rotated_y = x * math.sin(step) + y * math.cos(step)
    assert get_maximum_radius(symmetry_order, 0.0, rotated_x, rotated_y) == pytest.approx(
        get_maximum_radius(symmetry_order, 0.0, x, y))


def test_polygon_radius_never_exceeds_cylindrical_radius():
    for symmetry_order in (3, 5, 8):
        for x, y in ((10.0, 0.0), (3.0, 4.0), (-700.0, 120.0)):
            assert get_maximum_radius(symmetry_order, 0.2, x, y) <= math.hypot(x, y) + 1e-9


def test_order_zero_is_cylindrical():
    assert get_maximum_radius(0, 1.0, 3.0, 4.0) == 5.0
    assert get_maximum_radius(0, 0.0, 0.0, 0.0) == 0.0


@pytest.mark.parametrize("symmetry_order", [1, 2, -1, 2.5, "eight", None])
def test_invalid_symmetry_orders_raise(symmetry_order):
    with pytest.raises(InvalidParameterError):
        get_maximum_radius(symmetry_order, 0.0, 1.0, 1.0)


def test_cached_rejects_short_angle_vector():
    with pytest.raises(InvalidParameterError):
        get_maximum_radius_cached([], 1.0, 1.0)
    with pytest.raises(InvalidParameterError):
        get_maximum_radius_cached([(0.0, 1.0), (1.0, 0.0)], 1.0, 1.0)


def test_is_valid_symmetry_order():
    assert is_valid_symmetry_order(0)
    assert is_valid_symmetry_order(3)
    assert is_valid_symmetry_order(12)
    assert not is_valid_symmetry_order(1)
    assert not is_valid_symmetry_order(2)
    assert not is_valid_symmetry_order(-4)
    assert not is_valid_symmetry_order(True)


def test_fill_angle_vector_reuses_and_clears_output():
    angles = fill_angle_vector(12, 0.0)
    same = fill_angle_vector(4, math.pi / 4, out=angles)
    assert same is angles
    assert len(angles) == 4
    sin_phi, cos_phi = angles[0]
    assert sin_phi == pytest.approx(math.sqrt(0.5))
    assert cos_phi == pytest.approx(math.sqrt(0.5))


def test_fill_angle_vector_order_zero_is_empty():
    assert fill_angle_vector(0, 0.5) == []


def test_array_version_matches_scalar():
    angles = fill_angle_vector(8, 0.2)
    x = np.linspace(-2000.0, 2000.0, 41)
    y = np.linspace(1500.0, -1500.0, 41)
    expected = [get_maximum_radius_cached(angles, xi, yi) for xi, yi in zip(x, y)]
    np.testing.assert_allclose(get_maximum_radius_array(angles, x, y), expected, rtol=0, atol=1e-9)


def test_array_version_with_empty_angles_is_cylindrical():
    np.testing.assert_allclose(get_maximum_radius_array([], [3.0, 0.0], [4.0, 2.0]), [5.0, 2.0])


def test_polygon_vertices_lie_on_the_polygon():
    for symmetry_order, phi0 in ((3, 0.0), (8, 0.0), (12, 0.1)):
        corners = polygon_vertices(symmetry_order, phi0, 1000.0)
        assert corners.shape == (2, symmetry_order)
        for x, y in corners.T:
            assert get_maximum_radius(symmetry_order, phi0, x, y) == pytest.approx(1000.0)


def test_polygon_vertices_circle():
    points = polygon_vertices(0, 0.0, 50.0, n_circle_points=36)
    assert points.shape == (2, 36)
    np.testing.assert_allclose(np.hypot(points[0], points[1]), 50.0)
