"""SVG serialization of vector documents."""
from pathlib import Path
from typing import List, Tuple, Union

from tracevec import __version__
from tracevec.document import VectorDocument
from tracevec.types import Color, CompoundPath, OutputWriteError, SubPath


def color_to_hex(color: Color) -> str:
    """Format an RGB(A) color as #RRGGBB (alpha ignored)."""
    r, g, b = [max(0, min(255, int(c))) for c in color[:3]]
    return f"#{r:02X}{g:02X}{b:02X}"


def format_number(x: float, precision: int) -> str:
    """
    Format number with given precision.

    Trailing zeros and a dangling decimal point are removed.
    """
    formatted = f"{x:.{precision}f}"
    if '.' in formatted:
        formatted = formatted.rstrip('0').rstrip('.')
    if formatted == "-0":
        formatted = "0"
    return formatted


def _subpath_commands(
    sub: SubPath,
    offset: Tuple[float, float],
    precision: int
) -> str:
    fmt = lambda x, y: f"{format_number(x - offset[0], precision)},{format_number(y - offset[1], precision)}"

    if sub.is_spline:
        first = sub.curves[0]
        cmds = [f"M{fmt(first.p0.x, first.p0.y)}"]
        for curve in sub.curves:
            cmds.append(
                f"C{fmt(curve.p1.x, curve.p1.y)} {fmt(curve.p2.x, curve.p2.y)} {fmt(curve.p3.x, curve.p3.y)}"
            )
    else:
        points = sub.points
        cmds = [f"M{fmt(points[0][0], points[0][1])}"]
        cmds.extend(f"L{fmt(x, y)}" for x, y in points[1:])

    if sub.is_closed:
        cmds.append("Z")

    return ' '.join(cmds)


def compound_path_to_svg(
    path: CompoundPath,
    precision: int = 2
) -> Tuple[str, Tuple[float, float]]:
    """
    Convert a compound path to SVG path data.

    Coordinates are written relative to the first point of the first
    sub-path, which is returned as the translate offset.

    Returns:
        Tuple of (path_data, offset)
    """
    subs = [s for s in path.paths if not s.is_empty()]
    if not subs:
        return "", (0.0, 0.0)

    x0, y0 = subs[0].start()
    offset = (round(x0, precision), round(y0, precision))
    data = ' '.join(_subpath_commands(s, offset, precision) for s in subs)
    return data, offset


def path_element(path: CompoundPath, color: Color, precision: int = 2) -> str:
    """Single <path> element with fill and translate transform."""
    data, offset = compound_path_to_svg(path, precision)
    if not data:
        return ""
    tx = format_number(offset[0], precision)
    ty = format_number(offset[1], precision)
    return f'<path d="{data}" fill="{color_to_hex(color)}" transform="translate({tx},{ty})"/>'


def generate_svg(document: VectorDocument) -> str:
    """
    Serialize a vector document.

    Paths are written in document order, so the first entry is painted
    first (bottom-most).
    """
    elements = []
    for entry in document:
        elem = path_element(entry.path, entry.color, document.path_precision)
        if elem:
            elements.append(elem)

    lines: List[str] = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<!-- Generator: tracevec {__version__}, precision {document.path_precision} -->',
        f'<svg version="1.1" xmlns="http://www.w3.org/2000/svg" '
        f'width="{document.width}" height="{document.height}">',
    ]
    lines.extend(elements)
    lines.append('</svg>')
    return '\n'.join(lines) + '\n'


def save_svg(
    svg_string: str,
    output_path: Union[str, Path]
) -> None:
    """
    Save SVG string to file.

    Raises:
        OutputWriteError: If the file cannot be created or written
    """
    try:
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(svg_string)
    except OSError as e:
        raise OutputWriteError(f"Cannot write output file {output_path}: {e}") from e
