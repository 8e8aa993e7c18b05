import os
from enum import Enum

from pfa_geometry.errors import InvalidParameterError


class HitType(Enum):
    """Calorimeter hit categories"""
    TRACKER = 'tracker'
    ECAL = 'ecal'
    HCAL = 'hcal'
    MUON = 'muon'
    OTHER = 'other'


class Granularity(Enum):
    """Coarseness classification used by the clustering algorithms"""
    VERY_FINE = 'very_fine'
    FINE = 'fine'
    COARSE = 'coarse'
    VERY_COARSE = 'very_coarse'


# HitType.OTHER has no default granularity
DEFAULT_HIT_TYPE_GRANULARITIES = {
    HitType.TRACKER: Granularity.VERY_FINE,
    HitType.ECAL: Granularity.FINE,
    HitType.HCAL: Granularity.COARSE,
    HitType.MUON: Granularity.VERY_COARSE,
}

# Record field -> display name, in the order sections are initialized
CANONICAL_SUB_DETECTORS = {
    'in_det_barrel': 'InDetBarrel',
    'in_det_end_cap': 'InDetEndCap',
    'ecal_barrel': 'ECalBarrel',
    'ecal_end_cap': 'ECalEndCap',
    'hcal_barrel': 'HCalBarrel',
    'hcal_end_cap': 'HCalEndCap',
    'muon_barrel': 'MuonBarrel',
    'muon_end_cap': 'MuonEndCap',
}

# Tracker and coil extents carried by the geometry record, units mm
SCALAR_EXTENTS = (
    'main_tracker_inner_radius',
    'main_tracker_outer_radius',
    'main_tracker_z_extent',
    'coil_inner_radius',
    'coil_outer_radius',
    'coil_z_extent',
)

# Tolerance allowed when declaring a point to be "in" a gap region, units mm
DEFAULT_GAP_TOLERANCE = 0.0

GAP_TOLERANCE_ENV = "PFA_GEOMETRY_GAP_TOLERANCE"


def _parse_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    key = str(value).strip()
    if key.upper() in enum_cls.__members__:
        return enum_cls[key.upper()]
    try:
        return enum_cls(key.lower())
    except ValueError as exc:
        raise InvalidParameterError(f"Unknown {enum_cls.__name__}: {value!r}") from exc


def parse_hit_type(value):
    """
    Resolve a hit type from an enum member, its value or its name.

    Parameters:
    -----------
    value : HitType or str
        e.g. HitType.ECAL, 'ecal' or 'ECAL'
    """
    return _parse_enum(HitType, value)


def parse_granularity(value):
    """Resolve a granularity from an enum member, its value or its name"""
    return _parse_enum(Granularity, value)


def get_default_gap_tolerance():
    """
    Gap tolerance in mm, honouring the PFA_GEOMETRY_GAP_TOLERANCE override.
    """
    env_value = os.getenv(GAP_TOLERANCE_ENV, "").strip()
    if not env_value:
        return DEFAULT_GAP_TOLERANCE
    try:
        tolerance = float(env_value)
    except ValueError as exc:
        raise InvalidParameterError(f"Invalid {GAP_TOLERANCE_ENV} value: {env_value!r}") from exc
    if tolerance < 0:
        raise InvalidParameterError(f"{GAP_TOLERANCE_ENV} must be non-negative, got {tolerance}")
    return tolerance
