import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pfa_geometry.geometry_helper import GeometryHelper, reset_instance
from pfa_geometry.geometry_parsing.parameters import (
    BoxGapParameters,
    ConcentricGapParameters,
    GeometryParameters,
    SubDetectorInput,
    uniform_layers,
)


def make_section(inner_r, outer_r, inner_z, outer_z, n_layers, first_distance, pitch,
                 inner_symmetry_order=8, outer_symmetry_order=8, inner_phi=0.0, outer_phi=0.0):
    return SubDetectorInput(
        inner_r_coordinate=inner_r,
        inner_z_coordinate=inner_z,
        outer_r_coordinate=outer_r,
        outer_z_coordinate=outer_z,
        inner_phi_coordinate=inner_phi,
        inner_symmetry_order=inner_symmetry_order,
        outer_phi_coordinate=outer_phi,
        outer_symmetry_order=outer_symmetry_order,
        layers=uniform_layers(n_layers, first_distance, pitch, 0.6, 0.02),
    )


def make_geometry_parameters():
    """An ILD-like layout, all lengths in mm"""
    return GeometryParameters(
        in_det_barrel=make_section(30.0, 1800.0, 0.0, 2300.0, 0, 0.0, 0.0, 0, 0),
        in_det_end_cap=make_section(30.0, 1800.0, 2000.0, 2300.0, 0, 0.0, 0.0, 0, 0),
        ecal_barrel=make_section(1000.0, 1150.0, 0.0, 2000.0, 30, 1000.0, 5.0),
        ecal_end_cap=make_section(300.0, 1150.0, 2100.0, 2250.0, 30, 2100.0, 5.0, 4, 8),
        hcal_barrel=make_section(1200.0, 2200.0, 0.0, 2250.0, 40, 1200.0, 25.0),
        hcal_end_cap=make_section(300.0, 2200.0, 2300.0, 3300.0, 40, 2300.0, 25.0, 4, 8),
        muon_barrel=make_section(3000.0, 4000.0, 0.0, 4000.0, 10, 3000.0, 100.0, 12, 12),
        muon_end_cap=make_section(300.0, 4000.0, 4100.0, 5000.0, 10, 4100.0, 90.0, 4, 12),
        main_tracker_inner_radius=30.0,
        main_tracker_outer_radius=1800.0,
        main_tracker_z_extent=2300.0,
        coil_inner_radius=2500.0,
        coil_outer_radius=2900.0,
        coil_z_extent=3800.0,
        additional_sub_detectors={
            'LumiCal': make_section(80.0, 200.0, 2500.0, 2650.0, 30, 2500.0, 5.0, 0, 0),
        },
        box_gaps=[
            BoxGapParameters(vertex=(-5.0, 1000.0, -2000.0), side1=(10.0, 0.0, 0.0),
                             side2=(0.0, 150.0, 0.0), side3=(0.0, 0.0, 4000.0)),
        ],
        concentric_gaps=[
            ConcentricGapParameters(min_z_coordinate=2000.0, max_z_coordinate=2100.0,
                                    inner_r_coordinate=1000.0, outer_r_coordinate=1150.0,
                                    inner_symmetry_order=8, outer_symmetry_order=8),
        ],
    )


@pytest.fixture
def geometry_parameters():
    return make_geometry_parameters()


@pytest.fixture
def helper():
    return GeometryHelper()


@pytest.fixture
def initialized_helper(geometry_parameters):
    geometry_helper = GeometryHelper()
    geometry_helper.initialize(geometry_parameters)
    return geometry_helper


@pytest.fixture(autouse=True)
def _reset_process_state(monkeypatch):
    monkeypatch.delenv("PFA_GEOMETRY_GAP_TOLERANCE", raising=False)
    yield
    GeometryHelper.reset_hit_type_granularities()
    reset_instance()
