"""
Input records handed over by the external geometry configuration loader.

All lengths are in mm and all angles in radians. Fields left as None are
treated as "not provided"; reading the matching helper quantity then fails
with NotInitializedError rather than returning a default.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence


@dataclass(frozen=True)
class LayerParameters:
    """Position and absorber depth of a single detector layer"""
    closest_distance_to_ip: float
    n_radiation_lengths: float = 0.0
    n_interaction_lengths: float = 0.0


@dataclass
class SubDetectorInput:
    """Geometric description of one detector section"""
    inner_r_coordinate: float
    inner_z_coordinate: float
    outer_r_coordinate: float
    outer_z_coordinate: float
    inner_phi_coordinate: float = 0.0
    inner_symmetry_order: int = 0
    outer_phi_coordinate: float = 0.0
    outer_symmetry_order: int = 0
    layers: Sequence[LayerParameters] = field(default_factory=list)
    n_layers: Optional[int] = None


@dataclass
class BoxGapParameters:
    """Rectangular prism spanned by three side vectors from a vertex"""
    vertex: Sequence[float]
    side1: Sequence[float]
    side2: Sequence[float]
    side3: Sequence[float]


@dataclass
class ConcentricGapParameters:
    """
    Polygonal or cylindrical shell between two z planes.

    start_phi/end_phi optionally restrict the gap to the wedge running
    counter-clockwise from start_phi to end_phi; with both None the full
    azimuth is covered.
    """
    min_z_coordinate: float
    max_z_coordinate: float
    inner_r_coordinate: float
    outer_r_coordinate: float
    inner_phi_coordinate: float = 0.0
    inner_symmetry_order: int = 0
    outer_phi_coordinate: float = 0.0
    outer_symmetry_order: int = 0
    start_phi: Optional[float] = None
    end_phi: Optional[float] = None


@dataclass
class GeometryParameters:
    """Everything GeometryHelper.initialize consumes"""
    in_det_barrel: Optional[SubDetectorInput] = None
    in_det_end_cap: Optional[SubDetectorInput] = None
    ecal_barrel: Optional[SubDetectorInput] = None
    ecal_end_cap: Optional[SubDetectorInput] = None
    hcal_barrel: Optional[SubDetectorInput] = None
    hcal_end_cap: Optional[SubDetectorInput] = None
    muon_barrel: Optional[SubDetectorInput] = None
    muon_end_cap: Optional[SubDetectorInput] = None

    main_tracker_inner_radius: Optional[float] = None
    main_tracker_outer_radius: Optional[float] = None
    main_tracker_z_extent: Optional[float] = None
    coil_inner_radius: Optional[float] = None
    coil_outer_radius: Optional[float] = None
    coil_z_extent: Optional[float] = None

    additional_sub_detectors: Dict[str, SubDetectorInput] = field(default_factory=dict)
    box_gaps: List[BoxGapParameters] = field(default_factory=list)
    concentric_gaps: List[ConcentricGapParameters] = field(default_factory=list)


def uniform_layers(n_layers, first_distance, pitch, radiation_lengths_per_layer=0.0,
                   interaction_lengths_per_layer=0.0):
    """
    Build a regular layer profile, e.g. a sampling calorimeter with fixed pitch.

    Parameters:
    -----------
    n_layers : int
        Number of layers
    first_distance : float
        Closest distance of the first layer to the IP, mm
    pitch : float
        Layer spacing, mm
    radiation_lengths_per_layer : float
        Absorber in front of each layer, radiation lengths
    interaction_lengths_per_layer : float
        Absorber in front of each layer, interaction lengths
    """
    return [
        LayerParameters(
            closest_distance_to_ip=first_distance + i * pitch,
            n_radiation_lengths=(i + 1) * radiation_lengths_per_layer,
            n_interaction_lengths=(i + 1) * interaction_lengths_per_layer,
        )
        for i in range(n_layers)
    ]
