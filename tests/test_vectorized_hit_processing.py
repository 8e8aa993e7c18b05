import awkward as ak
import numpy as np
import pytest

from pfa_geometry.errors import NotInitializedError
from pfa_geometry.geometry_helper import GeometryHelper
from pfa_geometry.geometry_parsing.parameters import GeometryParameters
from pfa_geometry.utils.vectorized_hit_processing import (
    UNRESOLVED_PSEUDO_LAYER,
    gap_mask,
    polygon_radii,
    pseudo_layers,
    tag_hits,
)

from conftest import make_section


def test_tag_hits_flat_arrays(initialized_helper):
    x = np.array([1000.0, 100.0, 0.0, 1050.0])
    y = np.array([0.0, 0.0, 1050.0, 0.0])
    z = np.array([0.0, 2110.0, 0.0, 2050.0])
    tags = tag_hits(initialized_helper, x, y, z)
    assert tags['pseudo_layer'].tolist() == [
        initialized_helper.get_pseudo_layer(p) for p in zip(x, y, z)]
    assert tags['pseudo_layer'][:2].tolist() == [1, 3]
    assert tags['in_gap'].tolist() == [False, False, True, True]


def test_tag_hits_keeps_event_structure(initialized_helper):
    x = ak.Array([[1000.0, 1003.0], [], [0.0]])
    y = ak.Array([[0.0, 0.0], [], [1050.0]])
    z = ak.Array([[0.0, 0.0], [], [0.0]])
    tags = tag_hits(initialized_helper, x, y, z)
    assert ak.to_list(tags['pseudo_layer']) == [[1, 2], [], [11]]
    assert ak.to_list(tags['in_gap']) == [[False, False], [], [True]]


def test_unresolved_hits_are_flagged():
    helper = GeometryHelper()
    helper.initialize(GeometryParameters(
        ecal_end_cap=make_section(300.0, 1150.0, 2100.0, 2250.0, 30, 2100.0, 5.0)))
    layers = pseudo_layers(helper, np.array([500.0, 500.0]), np.array([0.0, 0.0]), np.array([0.0, 2100.0]))
    assert layers.tolist() == [UNRESOLVED_PSEUDO_LAYER, 1]


def test_gap_mask_without_gaps():
    helper = GeometryHelper()
    helper.initialize(GeometryParameters(
        ecal_barrel=make_section(1000.0, 1150.0, 0.0, 2000.0, 30, 1000.0, 5.0)))
    assert not gap_mask(helper, np.zeros(3), np.zeros(3), np.zeros(3)).any()


def test_tag_hits_requires_initialized_geometry(helper):
    with pytest.raises(NotInitializedError):
        tag_hits(helper, np.zeros(1), np.zeros(1), np.zeros(1))


def test_tag_hits_rejects_mismatched_lengths(initialized_helper):
    with pytest.raises(ValueError):
        tag_hits(initialized_helper, np.zeros(2), np.zeros(3), np.zeros(2))


def test_polygon_radii(initialized_helper):
    phi = np.radians(22.5)
    x = ak.Array([[1000.0], [1000.0 * np.cos(phi), 0.0]])
    y = ak.Array([[0.0], [1000.0 * np.sin(phi), -500.0]])
    radii = ak.to_list(polygon_radii(initialized_helper, 'ecal_barrel', x, y))
    assert radii[0] == [pytest.approx(1000.0)]
    assert radii[1] == [pytest.approx(1000.0 * np.cos(phi)), pytest.approx(500.0)]
