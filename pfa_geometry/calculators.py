"""
Strategy interfaces for the magnetic field and pseudolayer calculations,
with the default built-in implementations.

A calculator is installed on a GeometryHelper, which calls
initialize_geometry(helper) once the geometry is known and then forwards
every query to compute().
"""

import bisect
import math
from abc import ABC, abstractmethod

from pfa_geometry.errors import InvalidParameterError, NotFoundError, NotInitializedError
from pfa_geometry.geometry_parsing.polygon_math import fill_angle_vector, get_maximum_radius_cached


class BFieldCalculator(ABC):
    """Provides the magnetic field at a position"""

    def initialize_geometry(self, geometry_helper):
        """Called by the helper once its geometry has been initialized"""

    @abstractmethod
    def compute(self, position) -> float:
        """Field at position (x, y, z), units Tesla"""


class PseudoLayerCalculator(ABC):
    """Maps a position onto a discrete pseudolayer index"""

    def initialize_geometry(self, geometry_helper):
        """Called by the helper once its geometry has been initialized"""

    @abstractmethod
    def compute(self, position) -> int:
        """Pseudolayer for position (x, y, z)"""

    @abstractmethod
    def pseudo_layer_at_ip(self) -> int:
        """Pseudolayer assigned to the interaction point, start of the scale"""


def _initialized_sections(getters):
    sections = [getter() for getter in getters]
    return [section for section in sections if section.is_initialized]


class SimpleBFieldCalculator(BFieldCalculator):
    """
    Piecewise constant field: solenoid field inside the muon system,
    return fields in the muon barrel and end caps.
    """

    def __init__(self, inner_bfield=4.0, muon_barrel_bfield=-1.5, muon_end_cap_bfield=0.01):
        self.inner_bfield = float(inner_bfield)
        self.muon_barrel_bfield = float(muon_barrel_bfield)
        self.muon_end_cap_bfield = float(muon_end_cap_bfield)
        self._muon_barrel_inner_r = math.inf
        self._muon_end_cap_inner_z = math.inf

    def initialize_geometry(self, geometry_helper):
        barrel = geometry_helper.get_muon_barrel_parameters()
        end_cap = geometry_helper.get_muon_end_cap_parameters()
        self._muon_barrel_inner_r = barrel.inner_r_coordinate if barrel.is_initialized else math.inf
        self._muon_end_cap_inner_z = end_cap.inner_z_coordinate if end_cap.is_initialized else math.inf

    def compute(self, position) -> float:
        x, y, z = position
        if abs(z) >= self._muon_end_cap_inner_z:
            return self.muon_end_cap_bfield
        if math.hypot(x, y) >= self._muon_barrel_inner_r:
            return self.muon_barrel_bfield
        return self.inner_bfield


class FineGranularityPseudoLayerCalculator(PseudoLayerCalculator):
    """
    Pseudolayers from the layer positions of the calorimeters and muon system.

    Barrel layers are matched on the polygon radius of the ECal barrel inner
    edge, end cap layers on |z|. In the barrel/end cap overlap region the
    deeper of the two candidates is used. Pseudolayer 0 belongs to the
    interaction point and to every position in front of the first layer.
    """

    def __init__(self):
        self._barrel_layer_positions = []
        self._end_cap_layer_positions = []
        self._barrel_angles = []
        self._barrel_inner_r = 0.0
        self._end_cap_inner_z = math.inf
        self._is_initialized = False

    def initialize_geometry(self, geometry_helper):
        barrel_sections = _initialized_sections((
            geometry_helper.get_ecal_barrel_parameters,
            geometry_helper.get_hcal_barrel_parameters,
            geometry_helper.get_muon_barrel_parameters,
        ))
        end_cap_sections = _initialized_sections((
            geometry_helper.get_ecal_end_cap_parameters,
            geometry_helper.get_hcal_end_cap_parameters,
            geometry_helper.get_muon_end_cap_parameters,
        ))

        barrel_positions = self._collect_layer_positions('barrel', barrel_sections)
        end_cap_positions = self._collect_layer_positions('end cap', end_cap_sections)

        barrel_angles = []
        barrel_inner_r = 0.0
        if barrel_sections:
            innermost = barrel_sections[0]
            barrel_angles = fill_angle_vector(innermost.inner_symmetry_order, innermost.inner_phi_coordinate)
            barrel_inner_r = innermost.inner_r_coordinate

        end_cap_inner_z = end_cap_sections[0].inner_z_coordinate if end_cap_sections else math.inf

        self._barrel_layer_positions = barrel_positions
        self._end_cap_layer_positions = end_cap_positions
        self._barrel_angles = barrel_angles
        self._barrel_inner_r = barrel_inner_r
        self._end_cap_inner_z = end_cap_inner_z
        self._is_initialized = True

    @staticmethod
    def _collect_layer_positions(region, sections):
        positions = [layer.closest_distance_to_ip
                     for section in sections
                     for layer in section.layer_parameters_list]
        for previous, current in zip(positions, positions[1:]):
            if current < previous:
                raise InvalidParameterError(
                    f"{region} layer positions are not ordered front to back ({current} after {previous})")
        return positions

    @staticmethod
    def _find_matching_layer(position, layer_positions):
        """Index of the layer closest to position; -1 in front of the first layer, clamped past the last"""
        upper = bisect.bisect_right(layer_positions, position)
        if upper == len(layer_positions):
            return len(layer_positions) - 1
        if upper == 0:
            return -1
        lower = upper - 1
        if abs(position - layer_positions[lower]) < abs(position - layer_positions[upper]):
            return lower
        return upper

    def _barrel_layer(self, r):
        if not self._barrel_layer_positions:
            raise NotFoundError(f"No barrel layers describe radius {r}")
        return self._find_matching_layer(r, self._barrel_layer_positions)

    def _end_cap_layer(self, z):
        if not self._end_cap_layer_positions:
            raise NotFoundError(f"No end cap layers describe z {z}")
        return self._find_matching_layer(z, self._end_cap_layer_positions)

    def _radius(self, x, y):
        if not self._barrel_angles:
            return math.hypot(x, y)
        return get_maximum_radius_cached(self._barrel_angles, x, y)

    def compute(self, position) -> int:
        if not self._is_initialized:
            raise NotInitializedError("Pseudolayer calculator geometry has not been initialized")

        x, y, z = position
        z = abs(z)
        r = self._radius(x, y)

        if z < self._end_cap_inner_z:
            layer = self._barrel_layer(r)
        elif r < self._barrel_inner_r:
            layer = self._end_cap_layer(z)
        elif not self._barrel_layer_positions:
            layer = self._end_cap_layer(z)
        elif not self._end_cap_layer_positions:
            layer = self._barrel_layer(r)
        else:
            layer = max(self._barrel_layer(r), self._end_cap_layer(z))

        # Layer -1 (in front of the first layer) lands on the IP pseudolayer
        return self.pseudo_layer_at_ip() + 1 + layer

    def pseudo_layer_at_ip(self) -> int:
        return 0
