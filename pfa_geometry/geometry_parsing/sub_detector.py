import math
from typing import Tuple

from pfa_geometry.errors import AlreadyInitializedError, InvalidParameterError, NotInitializedError
from pfa_geometry.geometry_parsing.parameters import LayerParameters
from pfa_geometry.geometry_parsing.polygon_math import is_valid_symmetry_order


def _to_finite_float(name, value):
    try:
        value = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidParameterError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(value):
        raise InvalidParameterError(f"{name} must be finite, got {value}")
    return value


def _to_layer(sub_detector_name, index, layer):
    if not isinstance(layer, LayerParameters):
        try:
            layer = LayerParameters(*layer)
        except TypeError as exc:
            raise InvalidParameterError(
                f"{sub_detector_name}: layer {index} is not a valid layer record") from exc

    prefix = f"{sub_detector_name} layer {index}"
    layer = LayerParameters(
        closest_distance_to_ip=_to_finite_float(f"{prefix} closest distance to ip", layer.closest_distance_to_ip),
        n_radiation_lengths=_to_finite_float(f"{prefix} radiation lengths", layer.n_radiation_lengths),
        n_interaction_lengths=_to_finite_float(f"{prefix} interaction lengths", layer.n_interaction_lengths),
    )
    if min(layer.closest_distance_to_ip, layer.n_radiation_lengths, layer.n_interaction_lengths) < 0:
        raise InvalidParameterError(f"{prefix}: negative layer parameters {layer}")
    return layer


class SubDetectorParameters:
    """
    Geometry of a single detector section, immutable once initialized.

    Every quantity raises NotInitializedError until initialize() succeeds.
    """

    def __init__(self):
        self._is_initialized = False
        self._name = None
        self._inner_r_coordinate = None
        self._inner_z_coordinate = None
        self._inner_phi_coordinate = None
        self._inner_symmetry_order = None
        self._outer_r_coordinate = None
        self._outer_z_coordinate = None
        self._outer_phi_coordinate = None
        self._outer_symmetry_order = None
        self._n_layers = None
        self._layer_parameters_list = ()

    @classmethod
    def from_input(cls, sub_detector_name, input_parameters):
        """Build and initialize in one step"""
        parameters = cls()
        parameters.initialize(sub_detector_name, input_parameters)
        return parameters

    def initialize(self, sub_detector_name, input_parameters):
        """
        Initialize the section from an input record.

        Parameters:
        -----------
        sub_detector_name : str
            Section name, used in error messages
        input_parameters : SubDetectorInput
            Record provided by the configuration loader
        """
        if self._is_initialized:
            raise AlreadyInitializedError(f"Sub detector {self._name} is already initialized")

        name = sub_detector_name
        inner_r = _to_finite_float(f"{name} inner r", input_parameters.inner_r_coordinate)
        inner_z = _to_finite_float(f"{name} inner z", input_parameters.inner_z_coordinate)
        inner_phi = _to_finite_float(f"{name} inner phi", input_parameters.inner_phi_coordinate)
        outer_r = _to_finite_float(f"{name} outer r", input_parameters.outer_r_coordinate)
        outer_z = _to_finite_float(f"{name} outer z", input_parameters.outer_z_coordinate)
        outer_phi = _to_finite_float(f"{name} outer phi", input_parameters.outer_phi_coordinate)

        if inner_r < 0 or outer_r < 0:
            raise InvalidParameterError(f"{name}: negative radius (inner {inner_r}, outer {outer_r})")
        if inner_r > outer_r:
            raise InvalidParameterError(f"{name}: inner r {inner_r} exceeds outer r {outer_r}")
        if inner_z > outer_z:
            raise InvalidParameterError(f"{name}: inner z {inner_z} exceeds outer z {outer_z}")

        for label, order in (('inner', input_parameters.inner_symmetry_order),
                             ('outer', input_parameters.outer_symmetry_order)):
            if not is_valid_symmetry_order(order):
                raise InvalidParameterError(f"{name}: invalid {label} symmetry order {order!r}")

        layers = tuple(_to_layer(name, i, layer) for i, layer in enumerate(input_parameters.layers))
        for previous, current in zip(layers, layers[1:]):
            if current.closest_distance_to_ip < previous.closest_distance_to_ip:
                raise InvalidParameterError(
                    f"{name}: layers must be ordered front to back "
                    f"({current.closest_distance_to_ip} after {previous.closest_distance_to_ip})")

        n_layers = input_parameters.n_layers
        if n_layers is None:
            n_layers = len(layers)
        elif n_layers != len(layers):
            raise InvalidParameterError(
                f"{name}: {n_layers} layers declared but {len(layers)} layer records given")

        self._name = name
        self._inner_r_coordinate = inner_r
        self._inner_z_coordinate = inner_z
        self._inner_phi_coordinate = inner_phi
        self._inner_symmetry_order = int(input_parameters.inner_symmetry_order)
        self._outer_r_coordinate = outer_r
        self._outer_z_coordinate = outer_z
        self._outer_phi_coordinate = outer_phi
        self._outer_symmetry_order = int(input_parameters.outer_symmetry_order)
        self._n_layers = int(n_layers)
        self._layer_parameters_list = layers
        self._is_initialized = True

    def _get(self, value):
        if not self._is_initialized:
            raise NotInitializedError("Sub detector parameters have not been initialized")
        return value

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    @property
    def name(self) -> str:
        return self._get(self._name)

    @property
    def inner_r_coordinate(self) -> float:
        """Inner cylindrical polar r coordinate, origin interaction point, units mm"""
        return self._get(self._inner_r_coordinate)

    @property
    def inner_z_coordinate(self) -> float:
        """Inner cylindrical polar z coordinate, origin interaction point, units mm"""
        return self._get(self._inner_z_coordinate)

    @property
    def inner_phi_coordinate(self) -> float:
        """Inner cylindrical polar phi coordinate (angle wrt cartesian x axis)"""
        return self._get(self._inner_phi_coordinate)

    @property
    def inner_symmetry_order(self) -> int:
        """Order of symmetry of the innermost edge"""
        return self._get(self._inner_symmetry_order)

    @property
    def outer_r_coordinate(self) -> float:
        return self._get(self._outer_r_coordinate)

    @property
    def outer_z_coordinate(self) -> float:
        return self._get(self._outer_z_coordinate)

    @property
    def outer_phi_coordinate(self) -> float:
        return self._get(self._outer_phi_coordinate)

    @property
    def outer_symmetry_order(self) -> int:
        return self._get(self._outer_symmetry_order)

    @property
    def n_layers(self) -> int:
        return self._get(self._n_layers)

    @property
    def layer_parameters_list(self) -> Tuple[LayerParameters, ...]:
        """Layer parameters in physical order, front to back"""
        return self._get(self._layer_parameters_list)

    def __repr__(self):
        if not self._is_initialized:
            return "SubDetectorParameters(<uninitialized>)"
        return (f"SubDetectorParameters({self._name}: r=[{self._inner_r_coordinate}, {self._outer_r_coordinate}], "
                f"z=[{self._inner_z_coordinate}, {self._outer_z_coordinate}], n_layers={self._n_layers})")
