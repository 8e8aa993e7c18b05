import math

import pytest

from pfa_geometry.errors import AlreadyInitializedError, InvalidParameterError, NotInitializedError
from pfa_geometry.geometry_parsing.parameters import LayerParameters, SubDetectorInput, uniform_layers
from pfa_geometry.geometry_parsing.sub_detector import SubDetectorParameters


def _ecal_barrel_input(**overrides):
    values = dict(
        inner_r_coordinate=1000.0,
        inner_z_coordinate=0.0,
        outer_r_coordinate=1150.0,
        outer_z_coordinate=2000.0,
        inner_phi_coordinate=0.0,
        inner_symmetry_order=8,
        outer_phi_coordinate=0.0,
        outer_symmetry_order=8,
        layers=uniform_layers(30, 1000.0, 5.0, 0.6, 0.02),
    )
    values.update(overrides)
    return SubDetectorInput(**values)


def test_uninitialized_section_raises_on_access():
    parameters = SubDetectorParameters()
    assert not parameters.is_initialized
    for attribute in ('name', 'inner_r_coordinate', 'outer_z_coordinate', 'inner_symmetry_order',
                      'n_layers', 'layer_parameters_list'):
        with pytest.raises(NotInitializedError):
            getattr(parameters, attribute)


def test_initialize_copies_the_record():
    parameters = SubDetectorParameters.from_input('ECalBarrel', _ecal_barrel_input())
    assert parameters.is_initialized
    assert parameters.name == 'ECalBarrel'
    assert parameters.inner_r_coordinate == 1000.0
    assert parameters.outer_r_coordinate == 1150.0
    assert parameters.inner_symmetry_order == 8
    assert parameters.n_layers == 30
    assert len(parameters.layer_parameters_list) == 30
    last = parameters.layer_parameters_list[-1]
    assert last.closest_distance_to_ip == pytest.approx(1145.0)
    assert last.n_radiation_lengths == pytest.approx(18.0)


def test_second_initialize_keeps_first_values():
    parameters = SubDetectorParameters.from_input('ECalBarrel', _ecal_barrel_input())
    with pytest.raises(AlreadyInitializedError):
        parameters.initialize('ECalBarrel', _ecal_barrel_input(inner_r_coordinate=1.0))
    assert parameters.inner_r_coordinate == 1000.0


@pytest.mark.parametrize("overrides", [
    dict(inner_r_coordinate=1200.0),
    dict(inner_r_coordinate=-1.0),
    dict(inner_z_coordinate=2500.0),
    dict(outer_z_coordinate=math.inf),
    dict(inner_symmetry_order=2),
    dict(outer_symmetry_order=-8),
    dict(n_layers=29),
    dict(layers=[LayerParameters(1005.0), LayerParameters(1000.0)]),
    dict(layers=[LayerParameters(-1.0)]),
    dict(layers=[LayerParameters(1000.0, n_radiation_lengths=-0.5)]),
])
def test_invalid_input_leaves_section_uninitialized(overrides):
    parameters = SubDetectorParameters()
    with pytest.raises(InvalidParameterError):
        parameters.initialize('ECalBarrel', _ecal_barrel_input(**overrides))
    assert not parameters.is_initialized


def test_section_without_layers():
    parameters = SubDetectorParameters.from_input(
        'InDetBarrel', _ecal_barrel_input(layers=[], inner_symmetry_order=0, outer_symmetry_order=0))
    assert parameters.n_layers == 0
    assert parameters.layer_parameters_list == ()
