"""
Vectorized geometry queries over hit collections.

Hits come either as flat numpy arrays or as jagged awkward arrays with one
list per event (as read from the event trees). Results keep the jagged
structure of the input.
"""

import logging
from typing import Dict, Tuple

import awkward as ak
import numpy as np

from pfa_geometry.errors import NotFoundError
from pfa_geometry.geometry_parsing.polygon_math import fill_angle_vector, get_maximum_radius_array

logger = logging.getLogger(__name__)

UNRESOLVED_PSEUDO_LAYER = -1


def _flatten(x, y, z) -> Tuple[np.ndarray, np.ndarray, np.ndarray, object]:
    """Flatten coordinates, returning the per-event counts for jagged input"""
    if isinstance(x, ak.Array) and x.ndim > 1:
        counts = ak.num(x, axis=1)
        flat = [ak.to_numpy(ak.flatten(values, axis=1)).astype(float) for values in (x, y, z)]
        return flat[0], flat[1], flat[2], counts

    flat = [np.asarray(ak.to_numpy(values) if isinstance(values, ak.Array) else values, dtype=float).ravel()
            for values in (x, y, z)]
    if not (flat[0].shape == flat[1].shape == flat[2].shape):
        raise ValueError(f"Coordinate arrays differ in length: {[v.shape for v in flat]}")
    return flat[0], flat[1], flat[2], None


def _restore(values: np.ndarray, counts):
    if counts is None:
        return values
    return ak.unflatten(values, counts)


def gap_mask(geometry_helper, x, y, z) -> np.ndarray:
    """Flat boolean mask of hits inside any detector gap"""
    mask = np.zeros(np.shape(x), dtype=bool)
    for gap in geometry_helper.get_detector_gap_list():
        mask |= gap.contains_array(x, y, z)
    return mask


def pseudo_layers(geometry_helper, x, y, z) -> np.ndarray:
    """
    Flat pseudolayer array; hits the calculator cannot place get -1.

    The calculator is an opaque strategy, so each hit goes through it.
    """
    layers = np.full(np.shape(x), UNRESOLVED_PSEUDO_LAYER, dtype=np.int64)
    n_unresolved = 0
    for i, position in enumerate(zip(x.tolist(), y.tolist(), z.tolist())):
        try:
            layers[i] = geometry_helper.get_pseudo_layer(position)
        except NotFoundError:
            n_unresolved += 1
    if n_unresolved:
        logger.debug("%d of %d hits could not be assigned a pseudolayer", n_unresolved, len(layers))
    return layers


def tag_hits(geometry_helper, x, y, z) -> Dict[str, object]:
    """
    Assign pseudolayers and gap flags to a hit collection.

    Parameters:
    -----------
    geometry_helper : GeometryHelper
        Initialized geometry
    x, y, z : array-like or awkward.Array
        Hit positions in mm; jagged awkward arrays are processed per event

    Returns:
    --------
    dict with 'pseudo_layer' (int, -1 where unresolved) and 'in_gap' (bool),
    shaped like the input
    """
    flat_x, flat_y, flat_z, counts = _flatten(x, y, z)

    layers = pseudo_layers(geometry_helper, flat_x, flat_y, flat_z)
    in_gap = gap_mask(geometry_helper, flat_x, flat_y, flat_z)

    return {
        'pseudo_layer': _restore(layers, counts),
        'in_gap': _restore(in_gap, counts),
    }


def polygon_radii(geometry_helper, section, x, y):
    """
    Inner-edge polygon radius of each hit for a canonical section.

    Parameters:
    -----------
    section : str
        Record field name of the section, e.g. 'ecal_barrel'
    """
    parameters = geometry_helper.get_sub_detector_parameters(section)
    angles = fill_angle_vector(parameters.inner_symmetry_order, parameters.inner_phi_coordinate)
    flat_x, flat_y, _, counts = _flatten(x, y, y)
    return _restore(get_maximum_radius_array(angles, flat_x, flat_y), counts)
