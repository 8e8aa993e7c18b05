"""
Regular polygon geometry for N-fold symmetric detector cross sections.

The "maximum radius" of a point (x, y) for a polygon of symmetry order N and
phi offset phi0 is the largest projection of the point onto the N face
normals at phi0 + 2*pi*k/N. It is the apothem of the smallest such polygon
with the point on its boundary, so comparing it against a section's inner or
outer r coordinate tells whether the point lies inside that faceted edge.
"""

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from pfa_geometry.errors import InvalidParameterError


AngleVector = List[Tuple[float, float]]

TWO_PI = 2.0 * math.pi


def _check_symmetry_order(symmetry_order) -> int:
    try:
        is_integer = not isinstance(symmetry_order, bool) and int(symmetry_order) == symmetry_order
    except (TypeError, ValueError):
        is_integer = False
    if not is_integer:
        raise InvalidParameterError(f"Symmetry order must be an integer, got {symmetry_order!r}")
    symmetry_order = int(symmetry_order)
    if symmetry_order < 0:
        raise InvalidParameterError(f"Symmetry order must be non-negative, got {symmetry_order}")
    return symmetry_order


def is_valid_symmetry_order(symmetry_order) -> bool:
    """Orders 0 (circular) and >= 3 (polygonal) describe a real boundary"""
    try:
        symmetry_order = _check_symmetry_order(symmetry_order)
    except InvalidParameterError:
        return False
    return symmetry_order == 0 or symmetry_order >= 3


def fill_angle_vector(symmetry_order: int, phi0: float, out: Optional[AngleVector] = None) -> AngleVector:
    """
    Fill a vector with (sine, cosine) pairs for the polygon face normals.

    Parameters:
    -----------
    symmetry_order : int
        Number of polygon faces, N
    phi0 : float
        Angle of the first face normal wrt the cartesian x axis, radians
    out : list, optional
        Vector to fill in place; it is cleared first

    Returns:
    --------
    list of (sin, cos) tuples, one per face normal
    """
    symmetry_order = _check_symmetry_order(symmetry_order)

    if out is None:
        out = []
    else:
        del out[:]

    for k in range(symmetry_order):
        phi = phi0 + k * TWO_PI / symmetry_order
        out.append((math.sin(phi), math.cos(phi)))

    return out


def get_maximum_radius_cached(angle_vector: Sequence[Tuple[float, float]], x: float, y: float) -> float:
    """
    Maximum polygon radius using cached sine/cosine values.

    Gives exactly the same result as get_maximum_radius for the
    (symmetry_order, phi0) the vector was filled with.
    """
    if len(angle_vector) < 3:
        raise InvalidParameterError(
            f"Angle vector needs at least 3 entries, got {len(angle_vector)}")

    max_radius = 0.0
    for sin_phi, cos_phi in angle_vector:
        radius = x * cos_phi + y * sin_phi
        if radius > max_radius:
            max_radius = radius

    return max_radius


def get_maximum_radius(symmetry_order: int, phi0: float, x: float, y: float) -> float:
    """
    Maximum polygon radius for a point in the transverse plane.

    Symmetry order 0 means no faceting and the plain cylindrical radius is
    returned. Orders 1 and 2 do not describe a closed polygon.
    """
    symmetry_order = _check_symmetry_order(symmetry_order)

    if symmetry_order == 0:
        return math.hypot(x, y)

    if symmetry_order < 3:
        raise InvalidParameterError(f"Symmetry order {symmetry_order} does not describe a polygon")

    return get_maximum_radius_cached(fill_angle_vector(symmetry_order, phi0), x, y)


def get_maximum_radius_array(angle_vector: Sequence[Tuple[float, float]], x, y) -> np.ndarray:
    """
    Vectorized maximum polygon radius over arrays of x and y.

    An empty angle vector selects the circular (symmetry order 0) case.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)

    if len(angle_vector) == 0:
        return np.hypot(x, y)
    if len(angle_vector) < 3:
        raise InvalidParameterError(
            f"Angle vector needs at least 3 entries, got {len(angle_vector)}")

    max_radius = np.zeros(np.broadcast(x, y).shape)
    for sin_phi, cos_phi in angle_vector:
        np.maximum(max_radius, x * cos_phi + y * sin_phi, out=max_radius)

    return max_radius


def polygon_vertices(symmetry_order: int, phi0: float, apothem: float, n_circle_points: int = 180) -> np.ndarray:
    """
    Corner points (2, N) of the polygon with the given apothem.

    Symmetry order 0 is sampled as a circle with n_circle_points points.
    """
    symmetry_order = _check_symmetry_order(symmetry_order)

    if symmetry_order == 0:
        phi = np.linspace(0.0, TWO_PI, n_circle_points, endpoint=False)
        return apothem * np.vstack((np.cos(phi), np.sin(phi)))

    if symmetry_order < 3:
        raise InvalidParameterError(f"Symmetry order {symmetry_order} does not describe a polygon")

    # Corners sit half way between neighbouring face normals
    half_step = math.pi / symmetry_order
    phi = phi0 + half_step + np.arange(symmetry_order) * 2.0 * half_step
    corner_radius = apothem / math.cos(half_step)
    return corner_radius * np.vstack((np.cos(phi), np.sin(phi)))
