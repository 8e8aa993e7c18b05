import ast
import logging
import operator
import os
import re
from dataclasses import dataclass, field
from typing import Dict, Optional

import xml.etree.ElementTree as ET

from pfa_geometry.detector_config import Granularity, HitType, parse_granularity, parse_hit_type
from pfa_geometry.errors import InvalidParameterError

logger = logging.getLogger(__name__)


# Unit conversions (all to mm for length, rad for angles)
UNIT_CONVERSIONS = {
    'mm': 1.0,
    'cm': 10.0,
    'm': 1000.0,
    'rad': 1.0,
    'mrad': 0.001,
    'deg': 3.141592653589793 / 180.0,
}

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
}

_UNARY_OPERATORS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


@dataclass
class GeometrySettings:
    """Settings read from the <GeometryHelper> block of a settings file"""
    gap_tolerance: Optional[float] = None
    hit_type_granularities: Dict[HitType, Granularity] = field(default_factory=dict)


def _evaluate_node(node):
    if isinstance(node, ast.Expression):
        return _evaluate_node(node.body)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
        return float(node.value)
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPERATORS:
        return _BINARY_OPERATORS[type(node.op)](_evaluate_node(node.left), _evaluate_node(node.right))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPERATORS:
        return _UNARY_OPERATORS[type(node.op)](_evaluate_node(node.operand))
    raise ValueError(f"Unsupported expression element: {ast.dump(node)}")


def parse_value(value_str):
    """
    Value parser that handles arithmetic and units.

    Parameters:
    -----------
    value_str : str or number
        e.g. "2.5*mm", "(1.75 + 787.105)*cm", "-10*deg"

    Returns:
    --------
    float in mm (lengths) or rad (angles)
    """
    if isinstance(value_str, (int, float)) and not isinstance(value_str, bool):
        return float(value_str)
    if value_str is None:
        raise InvalidParameterError("Missing value")

    expr = str(value_str).strip()
    if not expr:
        raise InvalidParameterError("Empty value")

    # Longest unit names first so 'mm' is not read as 'm'
    for unit in sorted(UNIT_CONVERSIONS, key=len, reverse=True):
        expr = re.sub(r'\b' + re.escape(unit) + r'\b', repr(UNIT_CONVERSIONS[unit]), expr)

    try:
        return _evaluate_node(ast.parse(expr, mode='eval'))
    except (SyntaxError, ValueError, ZeroDivisionError) as exc:
        raise InvalidParameterError(f"Could not evaluate {value_str!r}: {exc}") from exc


def _load_root(xml_source):
    if isinstance(xml_source, ET.Element):
        return xml_source
    if isinstance(xml_source, (str, os.PathLike)) and os.path.isfile(xml_source):
        return ET.parse(xml_source).getroot()
    try:
        return ET.fromstring(str(xml_source))
    except ET.ParseError as exc:
        raise InvalidParameterError(f"Settings are neither a file nor valid XML: {exc}") from exc


def read_geometry_settings(xml_source):
    """
    Read gap tolerance and hit type granularity overrides.

    Expected layout:

        <GeometryHelper>
            <GapTolerance>2*mm</GapTolerance>
            <HitTypeGranularity hitType="OTHER">COARSE</HitTypeGranularity>
        </GeometryHelper>

    Parameters:
    -----------
    xml_source : str, os.PathLike or xml.etree.ElementTree.Element
        Path to a settings file, an XML string or a parsed element

    Returns:
    --------
    GeometrySettings; fields absent from the block are left unset
    """
    root = _load_root(xml_source)
    block = root if root.tag == 'GeometryHelper' else root.find('.//GeometryHelper')

    settings = GeometrySettings()
    if block is None:
        logger.debug("No GeometryHelper block found, using defaults")
        return settings

    tolerance_elem = block.find('GapTolerance')
    if tolerance_elem is not None:
        tolerance = parse_value(tolerance_elem.text)
        if tolerance < 0:
            raise InvalidParameterError(f"GapTolerance must be non-negative, got {tolerance}")
        settings.gap_tolerance = tolerance

    for elem in block.findall('HitTypeGranularity'):
        hit_type_str = elem.get('hitType')
        if hit_type_str is None or elem.text is None:
            raise InvalidParameterError("HitTypeGranularity needs a hitType attribute and a value")
        hit_type = parse_hit_type(hit_type_str)
        settings.hit_type_granularities[hit_type] = parse_granularity(elem.text)

    logger.debug("Read geometry settings: %s", settings)
    return settings
