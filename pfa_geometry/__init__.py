from pfa_geometry.calculators import (
    BFieldCalculator,
    FineGranularityPseudoLayerCalculator,
    PseudoLayerCalculator,
    SimpleBFieldCalculator,
)
from pfa_geometry.detector_config import Granularity, HitType
from pfa_geometry.errors import (
    AlreadyInitializedError,
    GeometryError,
    InvalidParameterError,
    NotFoundError,
    NotInitializedError,
)
from pfa_geometry.geometry_helper import GeometryHelper, get_instance, reset_instance
