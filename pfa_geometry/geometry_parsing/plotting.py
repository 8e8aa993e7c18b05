import numpy as np
import matplotlib.pyplot as plt
import hist as hist
import mplhep as hep

from pfa_geometry.detector_config import CANONICAL_SUB_DETECTORS
from pfa_geometry.geometry_parsing.detector_gaps import BoxGap, ConcentricGap
from pfa_geometry.geometry_parsing.polygon_math import polygon_vertices
from pfa_geometry.utils.vectorized_hit_processing import pseudo_layers


BARREL_SECTIONS = ('in_det_barrel', 'ecal_barrel', 'hcal_barrel', 'muon_barrel')

# Corner index pairs of the 12 box edges, corners indexed by (side1, side2, side3) bits
BOX_EDGES = [(0, 1), (0, 2), (0, 4), (1, 3), (1, 5), (2, 3),
             (2, 6), (3, 7), (4, 5), (4, 6), (5, 7), (6, 7)]


def _closed(vertices):
    return np.hstack((vertices, vertices[:, :1]))


def _box_corners(gap):
    corners = []
    for i in range(8):
        corner = gap.vertex.copy()
        for bit, side in enumerate(gap.sides):
            if i & (1 << bit):
                corner = corner + side
        corners.append(corner)
    return np.array(corners)


def plot_rphi_outline(geometry_helper, ax=None, sections=BARREL_SECTIONS, show_gaps=True):
    """
    Draw the transverse (x-y) outline of the barrel sections and the gaps.

    Parameters:
    -----------
    geometry_helper : GeometryHelper
        Initialized geometry
    ax : matplotlib axes, optional
        Axes to draw on; a new figure is created if not given
    sections : iterable of str
        Record field names of the canonical sections to draw
    show_gaps : bool
        Also draw concentric gap boundaries and box gap edges

    Returns:
    --------
    matplotlib axes
    """
    if ax is None:
        with plt.style.context(hep.style.CMS):
            _, ax = plt.subplots(figsize=(10, 10))

    colors = plt.rcParams['axes.prop_cycle'].by_key()['color']

    for i, key in enumerate(sections):
        parameters = geometry_helper.get_sub_detector_parameters(key)
        if not parameters.is_initialized:
            continue
        color = colors[i % len(colors)]
        inner = _closed(polygon_vertices(parameters.inner_symmetry_order, parameters.inner_phi_coordinate,
                                         parameters.inner_r_coordinate))
        outer = _closed(polygon_vertices(parameters.outer_symmetry_order, parameters.outer_phi_coordinate,
                                         parameters.outer_r_coordinate))
        ax.plot(inner[0], inner[1], color=color, label=CANONICAL_SUB_DETECTORS[key])
        ax.plot(outer[0], outer[1], color=color)

    if show_gaps:
        for gap in geometry_helper.get_detector_gap_list():
            if isinstance(gap, ConcentricGap):
                for order, phi, radius in ((gap.inner_symmetry_order, gap.inner_phi_coordinate, gap.inner_r_coordinate),
                                           (gap.outer_symmetry_order, gap.outer_phi_coordinate, gap.outer_r_coordinate)):
                    if radius <= 0:
                        continue
                    outline = _closed(polygon_vertices(order, phi, radius))
                    ax.plot(outline[0], outline[1], color='grey', linestyle='--', linewidth=1)
            elif isinstance(gap, BoxGap):
                corners = _box_corners(gap)
                for a, b in BOX_EDGES:
                    ax.plot(corners[[a, b], 0], corners[[a, b], 1], color='black', linewidth=0.8)

    ax.set_xlabel('x [mm]')
    ax.set_ylabel('y [mm]')
    ax.set_aspect('equal')
    ax.legend(loc='upper right', fontsize='small')
    return ax


def fill_pseudo_layer_map(geometry_helper, z_range, r_range, bins=(200, 100)):
    """
    Pseudolayer over a z-r grid, evaluated at the bin centres along phi = 0.

    Unresolved bins hold -1.

    Returns:
    --------
    hist.Hist with axes 'z' and 'r'
    """
    layer_map = (
        hist.Hist.new.Reg(bins[0], z_range[0], z_range[1], name="z", label="z [mm]")
        .Reg(bins[1], r_range[0], r_range[1], name="r", label="r [mm]")
        .Double()
    )

    z_centers, r_centers = np.meshgrid(layer_map.axes[0].centers, layer_map.axes[1].centers, indexing='ij')
    z_flat = z_centers.ravel()
    r_flat = r_centers.ravel()
    layers = pseudo_layers(geometry_helper, r_flat, np.zeros_like(r_flat), z_flat)

    layer_map.fill(z=z_flat, r=r_flat, weight=layers)
    return layer_map


def plot_pseudo_layer_map(layer_map, ax=None):
    """Draw a map produced by fill_pseudo_layer_map"""
    if ax is None:
        with plt.style.context(hep.style.CMS):
            _, ax = plt.subplots(figsize=(14, 7))
    hep.hist2dplot(layer_map, ax=ax, cmap="viridis")
    ax.set_xlabel('z [mm]')
    ax.set_ylabel('r [mm]')
    return ax
