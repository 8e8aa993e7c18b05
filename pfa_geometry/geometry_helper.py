"""
Geometry helper: the single owner of the detector geometry for a run.

Lifecycle: create (directly, or via get_instance for the process-wide
helper), optionally read settings / create gaps / install calculators,
initialize exactly once, then query. reset_instance discards the
process-wide helper so an independent geometry can be set up.

All queries are pure reads once initialization has succeeded.
"""

import logging
import math
from types import MappingProxyType

from pfa_geometry.calculators import (
    BFieldCalculator,
    FineGranularityPseudoLayerCalculator,
    PseudoLayerCalculator,
    SimpleBFieldCalculator,
)
from pfa_geometry.detector_config import (
    CANONICAL_SUB_DETECTORS,
    DEFAULT_HIT_TYPE_GRANULARITIES,
    SCALAR_EXTENTS,
    get_default_gap_tolerance,
    parse_granularity,
    parse_hit_type,
)
from pfa_geometry.errors import (
    AlreadyInitializedError,
    InvalidParameterError,
    NotFoundError,
    NotInitializedError,
)
from pfa_geometry.geometry_parsing.detector_gaps import BoxGap, ConcentricGap
from pfa_geometry.geometry_parsing.settings_parser import read_geometry_settings
from pfa_geometry.geometry_parsing.sub_detector import SubDetectorParameters

logger = logging.getLogger(__name__)


def _validate_scalar_extents(parameters):
    extents = {}
    for name in SCALAR_EXTENTS:
        value = getattr(parameters, name, None)
        if value is None:
            extents[name] = None
            continue
        try:
            value = float(value)
        except (TypeError, ValueError) as exc:
            raise InvalidParameterError(f"{name} must be a number, got {value!r}") from exc
        if not math.isfinite(value) or value < 0:
            raise InvalidParameterError(f"{name} must be finite and non-negative, got {value}")
        extents[name] = value

    for inner, outer in (('main_tracker_inner_radius', 'main_tracker_outer_radius'),
                         ('coil_inner_radius', 'coil_outer_radius')):
        if extents[inner] is not None and extents[outer] is not None and extents[inner] > extents[outer]:
            raise InvalidParameterError(f"{inner} {extents[inner]} exceeds {outer} {extents[outer]}")
    return extents


def _iter_named_inputs(additional_sub_detectors):
    if additional_sub_detectors is None:
        return []
    if hasattr(additional_sub_detectors, 'items'):
        return list(additional_sub_detectors.items())
    return list(additional_sub_detectors)


class GeometryHelper:
    """
    Owns the sub detector parameters, gap regions and calculators for a run.
    """

    # Process-wide, independent of any particular geometry
    _hit_type_to_granularity = dict(DEFAULT_HIT_TYPE_GRANULARITIES)

    def __init__(self):
        self._is_initialized = False
        self._bfield_calculator = None
        self._pseudo_layer_calculator = None
        self._sub_detectors = {key: SubDetectorParameters() for key in CANONICAL_SUB_DETECTORS}
        self._scalar_extents = {name: None for name in SCALAR_EXTENTS}
        self._additional_sub_detectors = {}
        self._detector_gap_list = []
        self._gap_tolerance = get_default_gap_tolerance()

    @property
    def is_initialized(self):
        return self._is_initialized

    # ------------------------------------------------------------------
    # Configuration

    def initialize(self, geometry_parameters):
        """
        Initialize the geometry from the configuration record.

        Parameters:
        -----------
        geometry_parameters : GeometryParameters
            Record produced by the configuration loader

        Raises AlreadyInitializedError on a second call and
        InvalidParameterError on inconsistent input; in both cases the
        helper is left exactly as it was.
        """
        if self._is_initialized:
            logger.error("Geometry helper initialize called twice")
            raise AlreadyInitializedError("Geometry helper is already initialized")

        try:
            sub_detectors = {}
            for key, display_name in CANONICAL_SUB_DETECTORS.items():
                input_parameters = getattr(geometry_parameters, key, None)
                if input_parameters is None:
                    sub_detectors[key] = SubDetectorParameters()
                else:
                    sub_detectors[key] = SubDetectorParameters.from_input(display_name, input_parameters)

            scalar_extents = _validate_scalar_extents(geometry_parameters)

            additional_sub_detectors = {}
            for name, input_parameters in _iter_named_inputs(
                    getattr(geometry_parameters, 'additional_sub_detectors', None)):
                if not isinstance(name, str) or not name:
                    raise InvalidParameterError(f"Additional sub detector name must be a non-empty string, got {name!r}")
                if name in additional_sub_detectors:
                    raise InvalidParameterError(f"Duplicate additional sub detector name: {name}")
                additional_sub_detectors[name] = SubDetectorParameters.from_input(name, input_parameters)

            new_gaps = [self._build_box_gap(p) for p in getattr(geometry_parameters, 'box_gaps', None) or []]
            new_gaps += [self._build_concentric_gap(p)
                         for p in getattr(geometry_parameters, 'concentric_gaps', None) or []]
        except InvalidParameterError as exc:
            logger.error("Geometry initialization failed: %s", exc)
            raise

        bfield_calculator = self._bfield_calculator or SimpleBFieldCalculator()
        pseudo_layer_calculator = self._pseudo_layer_calculator or FineGranularityPseudoLayerCalculator()

        previous_state = dict(self.__dict__)
        self._sub_detectors = sub_detectors
        self._scalar_extents = scalar_extents
        self._additional_sub_detectors = additional_sub_detectors
        self._detector_gap_list = self._detector_gap_list + new_gaps
        self._bfield_calculator = bfield_calculator
        self._pseudo_layer_calculator = pseudo_layer_calculator
        self._is_initialized = True

        try:
            bfield_calculator.initialize_geometry(self)
            pseudo_layer_calculator.initialize_geometry(self)
        except Exception:
            logger.exception("Calculator rejected the geometry, rolling back initialization")
            self.__dict__.clear()
            self.__dict__.update(previous_state)
            raise

        logger.info(
            "Geometry initialized: sections [%s], %d additional sub detectors, %d gaps, "
            "bfield %s, pseudolayers %s",
            ", ".join(CANONICAL_SUB_DETECTORS[key] for key, section in sub_detectors.items()
                      if section.is_initialized),
            len(additional_sub_detectors),
            len(self._detector_gap_list),
            type(bfield_calculator).__name__,
            type(pseudo_layer_calculator).__name__,
        )

    def _build_box_gap(self, gap_parameters):
        return BoxGap.from_parameters(gap_parameters, tolerance=self._gap_tolerance)

    def _build_concentric_gap(self, gap_parameters):
        return ConcentricGap.from_parameters(gap_parameters, tolerance=self._gap_tolerance)

    def create_box_gap(self, gap_parameters):
        """Validate and add a box gap; nothing is added on failure"""
        gap = self._build_box_gap(gap_parameters)
        self._detector_gap_list.append(gap)
        logger.debug("Created %r", gap)
        return gap

    def create_concentric_gap(self, gap_parameters):
        """Validate and add a concentric gap; nothing is added on failure"""
        gap = self._build_concentric_gap(gap_parameters)
        self._detector_gap_list.append(gap)
        logger.debug("Created %r", gap)
        return gap

    def _install_calculator(self, calculator, interface, attribute):
        if not isinstance(calculator, interface):
            raise InvalidParameterError(
                f"Expected a {interface.__name__}, got {type(calculator).__name__}")

        if self._is_initialized:
            calculator.initialize_geometry(self)

        previous = getattr(self, attribute)
        setattr(self, attribute, calculator)
        if previous is not None:
            logger.debug("Replaced %s with %s", type(previous).__name__, type(calculator).__name__)

    def set_bfield_calculator(self, bfield_calculator):
        """Install the bfield calculator; the helper takes ownership"""
        self._install_calculator(bfield_calculator, BFieldCalculator, '_bfield_calculator')

    def set_pseudo_layer_calculator(self, pseudo_layer_calculator):
        """Install the pseudolayer calculator; the helper takes ownership"""
        self._install_calculator(pseudo_layer_calculator, PseudoLayerCalculator, '_pseudo_layer_calculator')

    def set_gap_tolerance(self, gap_tolerance):
        """Set the gap tolerance, units mm; only possible before any gap exists"""
        if self._is_initialized or self._detector_gap_list:
            raise AlreadyInitializedError("Gap tolerance must be set before gaps are created")
        try:
            gap_tolerance = float(gap_tolerance)
        except (TypeError, ValueError) as exc:
            raise InvalidParameterError(f"Gap tolerance must be a number, got {gap_tolerance!r}") from exc
        if not math.isfinite(gap_tolerance) or gap_tolerance < 0:
            raise InvalidParameterError(f"Gap tolerance must be finite and non-negative, got {gap_tolerance}")
        self._gap_tolerance = gap_tolerance

    def read_settings(self, xml_source):
        """
        Apply the <GeometryHelper> settings block.

        Hit type granularities are process-wide; the gap tolerance belongs
        to this helper, so settings must be read before initialize.
        """
        if self._is_initialized:
            raise AlreadyInitializedError("Settings must be read before the geometry is initialized")
        settings = read_geometry_settings(xml_source)
        if settings.gap_tolerance is not None:
            self.set_gap_tolerance(settings.gap_tolerance)
        for hit_type, granularity in settings.hit_type_granularities.items():
            self.set_hit_type_granularity(hit_type, granularity)
        return settings

    # ------------------------------------------------------------------
    # Queries

    def _check_initialized(self):
        if not self._is_initialized:
            raise NotInitializedError("Geometry helper has not been initialized")

    def get_bfield(self, position):
        """Magnetic field at position (x, y, z), units Tesla"""
        self._check_initialized()
        return self._bfield_calculator.compute(position)

    def get_pseudo_layer(self, position):
        """Pseudolayer for position (x, y, z)"""
        self._check_initialized()
        return self._pseudo_layer_calculator.compute(position)

    def get_pseudo_layer_at_ip(self):
        """Pseudolayer assigned to the interaction point, start of the pseudolayer scale"""
        self._check_initialized()
        return self._pseudo_layer_calculator.pseudo_layer_at_ip()

    def get_bfield_calculator(self):
        self._check_initialized()
        return self._bfield_calculator

    def get_pseudo_layer_calculator(self):
        self._check_initialized()
        return self._pseudo_layer_calculator

    def is_in_detector_gap_region(self, position):
        """Whether position lies in any of the detector gaps"""
        self._check_initialized()
        return any(gap.contains(position) for gap in self._detector_gap_list)

    def get_detector_gap_list(self):
        self._check_initialized()
        return tuple(self._detector_gap_list)

    def get_gap_tolerance(self):
        """Tolerance allowed when declaring a point to be "in" a gap region, units mm"""
        return self._gap_tolerance

    def get_sub_detector_parameters(self, key):
        """
        Canonical section by record field name, e.g. 'ecal_barrel'.

        The section itself may be uninitialized if the record omitted it.
        """
        self._check_initialized()
        try:
            return self._sub_detectors[key]
        except KeyError as exc:
            raise NotFoundError(f"Unknown sub detector section: {key}") from exc

    def get_in_det_barrel_parameters(self):
        return self.get_sub_detector_parameters('in_det_barrel')

    def get_in_det_end_cap_parameters(self):
        return self.get_sub_detector_parameters('in_det_end_cap')

    def get_ecal_barrel_parameters(self):
        return self.get_sub_detector_parameters('ecal_barrel')

    def get_ecal_end_cap_parameters(self):
        return self.get_sub_detector_parameters('ecal_end_cap')

    def get_hcal_barrel_parameters(self):
        return self.get_sub_detector_parameters('hcal_barrel')

    def get_hcal_end_cap_parameters(self):
        return self.get_sub_detector_parameters('hcal_end_cap')

    def get_muon_barrel_parameters(self):
        return self.get_sub_detector_parameters('muon_barrel')

    def get_muon_end_cap_parameters(self):
        return self.get_sub_detector_parameters('muon_end_cap')

    def get_additional_sub_detectors(self):
        """Read-only map from name to parameters for any additional sub detectors"""
        self._check_initialized()
        return MappingProxyType(self._additional_sub_detectors)

    def get_additional_sub_detector(self, name):
        self._check_initialized()
        try:
            return self._additional_sub_detectors[name]
        except KeyError as exc:
            raise NotFoundError(f"Unknown additional sub detector: {name}") from exc

    def _get_scalar_extent(self, name):
        self._check_initialized()
        value = self._scalar_extents[name]
        if value is None:
            raise NotInitializedError(f"{name} was not provided by the geometry record")
        return value

    def get_main_tracker_inner_radius(self):
        return self._get_scalar_extent('main_tracker_inner_radius')

    def get_main_tracker_outer_radius(self):
        return self._get_scalar_extent('main_tracker_outer_radius')

    def get_main_tracker_z_extent(self):
        return self._get_scalar_extent('main_tracker_z_extent')

    def get_coil_inner_radius(self):
        return self._get_scalar_extent('coil_inner_radius')

    def get_coil_outer_radius(self):
        return self._get_scalar_extent('coil_outer_radius')

    def get_coil_z_extent(self):
        return self._get_scalar_extent('coil_z_extent')

    # ------------------------------------------------------------------
    # Hit type granularities, shared by every helper in the process

    @classmethod
    def get_hit_type_granularity(cls, hit_type):
        """Granularity registered for a hit type; NotFoundError if none was"""
        hit_type = parse_hit_type(hit_type)
        try:
            return cls._hit_type_to_granularity[hit_type]
        except KeyError as exc:
            raise NotFoundError(f"No granularity registered for hit type {hit_type.name}") from exc

    @classmethod
    def set_hit_type_granularity(cls, hit_type, granularity):
        cls._hit_type_to_granularity[parse_hit_type(hit_type)] = parse_granularity(granularity)

    @classmethod
    def reset_hit_type_granularities(cls):
        cls._hit_type_to_granularity.clear()
        cls._hit_type_to_granularity.update(DEFAULT_HIT_TYPE_GRANULARITIES)


_instance = None


def get_instance():
    """The process-wide geometry helper, created on first use"""
    global _instance
    if _instance is None:
        _instance = GeometryHelper()
    return _instance


def reset_instance():
    """
    Discard the process-wide geometry helper.

    Callers must make sure no queries are in flight.
    """
    global _instance
    _instance = None
    logger.debug("Process-wide geometry helper reset")
