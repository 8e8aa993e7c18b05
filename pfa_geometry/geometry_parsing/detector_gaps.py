"""
Inactive regions of the detector volume.

Each gap answers a single question, contains(position), with a fixed
tolerance: points within the tolerance of a gap boundary count as inside.
"""

import math
from abc import ABC, abstractmethod

import numpy as np

from pfa_geometry.errors import InvalidParameterError
from pfa_geometry.geometry_parsing.polygon_math import (
    TWO_PI,
    fill_angle_vector,
    get_maximum_radius_array,
    get_maximum_radius_cached,
    is_valid_symmetry_order,
)

# Largest |cos| between box gap sides still treated as a right angle
ORTHOGONALITY_TOLERANCE = 1e-6


def _to_vector(name, values):
    vector = np.asarray(values, dtype=float)
    if vector.shape != (3,) or not np.all(np.isfinite(vector)):
        raise InvalidParameterError(f"{name} must be three finite coordinates, got {values!r}")
    return vector


def _to_float(name, value):
    try:
        value = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidParameterError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(value):
        raise InvalidParameterError(f"{name} must be finite, got {value}")
    return value


def _check_tolerance(tolerance):
    tolerance = _to_float("gap tolerance", tolerance)
    if tolerance < 0:
        raise InvalidParameterError(f"Gap tolerance must be non-negative, got {tolerance}")
    return tolerance


class DetectorGap(ABC):
    """A region of the detector with no active material"""

    def __init__(self, tolerance=0.0):
        self._tolerance = _check_tolerance(tolerance)

    @property
    def tolerance(self):
        return self._tolerance

    @abstractmethod
    def contains(self, position) -> bool:
        """Whether a position (x, y, z) lies in the gap"""

    @abstractmethod
    def contains_array(self, x, y, z) -> np.ndarray:
        """Vectorized contains over flat coordinate arrays"""


class BoxGap(DetectorGap):
    """
    Rectangular prism, not necessarily axis aligned.

    Defined by a vertex and the three mutually orthogonal side vectors
    leaving it.
    """

    def __init__(self, vertex, side1, side2, side3, tolerance=0.0):
        super().__init__(tolerance)
        self.vertex = _to_vector("box gap vertex", vertex)

        sides = []
        for i, side in enumerate((side1, side2, side3), start=1):
            side = _to_vector(f"box gap side{i}", side)
            length = float(np.linalg.norm(side))
            if length <= 0:
                raise InvalidParameterError(f"Box gap side{i} must have a positive length")
            sides.append(side)
        self.sides = tuple(sides)

        self._lengths = np.array([np.linalg.norm(side) for side in self.sides])
        # Rows are the unit vectors along each side
        self._unit_sides = np.vstack(self.sides) / self._lengths[:, np.newaxis]

        for i, j in ((0, 1), (0, 2), (1, 2)):
            cosine = float(np.dot(self._unit_sides[i], self._unit_sides[j]))
            if abs(cosine) > ORTHOGONALITY_TOLERANCE:
                raise InvalidParameterError(
                    f"Box gap side{i + 1} and side{j + 1} are not orthogonal (cos = {cosine:.3g})")

    @classmethod
    def from_parameters(cls, parameters, tolerance=0.0):
        return cls(parameters.vertex, parameters.side1, parameters.side2, parameters.side3, tolerance)

    def contains(self, position) -> bool:
        relative = np.asarray(position, dtype=float) - self.vertex
        projections = self._unit_sides @ relative
        return bool(np.all((projections >= -self._tolerance)
                           & (projections <= self._lengths + self._tolerance)))

    def contains_array(self, x, y, z) -> np.ndarray:
        relative = np.vstack((np.asarray(x, dtype=float),
                              np.asarray(y, dtype=float),
                              np.asarray(z, dtype=float))) - self.vertex[:, np.newaxis]
        projections = self._unit_sides @ relative
        inside = ((projections >= -self._tolerance)
                  & (projections <= self._lengths[:, np.newaxis] + self._tolerance))
        return np.all(inside, axis=0)

    def __repr__(self):
        return f"BoxGap(vertex={self.vertex.tolist()}, lengths={self._lengths.tolist()})"


class ConcentricGap(DetectorGap):
    """
    Shell between an inner and an outer polygon (or circle), bounded in z.

    The shell may be restricted to an azimuthal wedge running
    counter-clockwise from start_phi to end_phi, wrapping across 0/2pi.
    """

    def __init__(self, min_z_coordinate, max_z_coordinate, inner_r_coordinate, outer_r_coordinate,
                 inner_phi_coordinate=0.0, inner_symmetry_order=0,
                 outer_phi_coordinate=0.0, outer_symmetry_order=0,
                 start_phi=None, end_phi=None, tolerance=0.0):
        super().__init__(tolerance)
        self.min_z_coordinate = _to_float("concentric gap min z", min_z_coordinate)
        self.max_z_coordinate = _to_float("concentric gap max z", max_z_coordinate)
        self.inner_r_coordinate = _to_float("concentric gap inner r", inner_r_coordinate)
        self.outer_r_coordinate = _to_float("concentric gap outer r", outer_r_coordinate)
        self.inner_phi_coordinate = _to_float("concentric gap inner phi", inner_phi_coordinate)
        self.outer_phi_coordinate = _to_float("concentric gap outer phi", outer_phi_coordinate)

        if self.min_z_coordinate >= self.max_z_coordinate:
            raise InvalidParameterError(
                f"Concentric gap needs min z < max z, got [{self.min_z_coordinate}, {self.max_z_coordinate}]")
        if self.inner_r_coordinate < 0:
            raise InvalidParameterError(f"Concentric gap inner r must be non-negative, got {self.inner_r_coordinate}")
        if self.inner_r_coordinate > self.outer_r_coordinate:
            raise InvalidParameterError(
                f"Concentric gap inner r {self.inner_r_coordinate} exceeds outer r {self.outer_r_coordinate}")

        for label, order in (('inner', inner_symmetry_order), ('outer', outer_symmetry_order)):
            if not is_valid_symmetry_order(order):
                raise InvalidParameterError(f"Concentric gap {label} symmetry order {order!r} is invalid")
        self.inner_symmetry_order = int(inner_symmetry_order)
        self.outer_symmetry_order = int(outer_symmetry_order)

        if (start_phi is None) != (end_phi is None):
            raise InvalidParameterError("Concentric gap needs both start_phi and end_phi, or neither")
        if start_phi is None:
            self.start_phi = None
            self.span = TWO_PI
        else:
            self.start_phi = _to_float("concentric gap start phi", start_phi) % TWO_PI
            span = (_to_float("concentric gap end phi", end_phi) - self.start_phi) % TWO_PI
            # Equal start and end angles are read as the full azimuth
            self.span = span if span > 0 else TWO_PI

        # Empty vectors mark circular boundaries
        self._inner_angles = fill_angle_vector(self.inner_symmetry_order, self.inner_phi_coordinate)
        self._outer_angles = fill_angle_vector(self.outer_symmetry_order, self.outer_phi_coordinate)

    @classmethod
    def from_parameters(cls, parameters, tolerance=0.0):
        return cls(
            min_z_coordinate=parameters.min_z_coordinate,
            max_z_coordinate=parameters.max_z_coordinate,
            inner_r_coordinate=parameters.inner_r_coordinate,
            outer_r_coordinate=parameters.outer_r_coordinate,
            inner_phi_coordinate=parameters.inner_phi_coordinate,
            inner_symmetry_order=parameters.inner_symmetry_order,
            outer_phi_coordinate=parameters.outer_phi_coordinate,
            outer_symmetry_order=parameters.outer_symmetry_order,
            start_phi=parameters.start_phi,
            end_phi=parameters.end_phi,
            tolerance=tolerance,
        )

    @property
    def is_full_azimuth(self):
        return self.span >= TWO_PI

    @staticmethod
    def _radius(angles, x, y):
        if not angles:
            return math.hypot(x, y)
        return get_maximum_radius_cached(angles, x, y)

    def _in_phi_span(self, x, y):
        if self.is_full_azimuth:
            return True
        rho = math.hypot(x, y)
        if rho == 0.0:
            # The axis touches every wedge
            return True
        offset = (math.atan2(y, x) - self.start_phi) % TWO_PI
        phi_tolerance = self._tolerance / rho
        return offset <= self.span + phi_tolerance or offset >= TWO_PI - phi_tolerance

    def contains(self, position) -> bool:
        x, y, z = (float(v) for v in position)

        if z < self.min_z_coordinate - self._tolerance or z > self.max_z_coordinate + self._tolerance:
            return False

        if self._radius(self._inner_angles, x, y) < self.inner_r_coordinate - self._tolerance:
            return False

        if self._radius(self._outer_angles, x, y) > self.outer_r_coordinate + self._tolerance:
            return False

        return self._in_phi_span(x, y)

    def contains_array(self, x, y, z) -> np.ndarray:
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        z = np.asarray(z, dtype=float)
        tol = self._tolerance

        inside = (z >= self.min_z_coordinate - tol) & (z <= self.max_z_coordinate + tol)
        inside &= get_maximum_radius_array(self._inner_angles, x, y) >= self.inner_r_coordinate - tol
        inside &= get_maximum_radius_array(self._outer_angles, x, y) <= self.outer_r_coordinate + tol

        if not self.is_full_azimuth:
            rho = np.hypot(x, y)
            offset = np.mod(np.arctan2(y, x) - self.start_phi, TWO_PI)
            with np.errstate(divide='ignore'):
                phi_tolerance = np.where(rho > 0, tol / np.where(rho > 0, rho, 1.0), np.inf)
            inside &= (offset <= self.span + phi_tolerance) | (offset >= TWO_PI - phi_tolerance)

        return inside

    def __repr__(self):
        return (f"ConcentricGap(z=[{self.min_z_coordinate}, {self.max_z_coordinate}], "
                f"r=[{self.inner_r_coordinate}, {self.outer_r_coordinate}], "
                f"symmetry=({self.inner_symmetry_order}, {self.outer_symmetry_order}), span={self.span:.4f})")
