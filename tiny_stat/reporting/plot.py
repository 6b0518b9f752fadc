"""
PNG rendering of empirical quantile curves.

Uses matplotlib's object-oriented Figure API with the Agg canvas, so
rendering never touches pyplot's global state or requires a display.
"""

import logging
from typing import BinaryIO, Callable, List, Optional, Sequence, Tuple

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure

logger = logging.getLogger(__name__)

DEFAULT_POINTS = 100
DEFAULT_FIGSIZE = (8.0, 4.5)
DEFAULT_DPI = 100


def quantile_curve(
    estimate: Callable[[float], float], points: int = DEFAULT_POINTS
) -> List[Tuple[float, float]]:
    """
    Sample a quantile function at equally spaced ranks in [0, 1).

    Args:
        estimate: Function mapping a rank q to the estimated value.
        points: Number of ranks, i / points for i in range(points).

    Returns:
        List of (rank, value) pairs.

    Raises:
        ValueError: If points is less than 1.
    """
    if isinstance(points, bool) or not isinstance(points, int) or points < 1:
        raise ValueError("Number of points must be an integer >= 1")

    ranks = [i / points for i in range(points)]
    return [(q, estimate(q)) for q in ranks]


def render_quantile_curve(
    curve: Sequence[Tuple[float, float]],
    fp: BinaryIO,
    title: Optional[str] = None,
    figsize: Tuple[float, float] = DEFAULT_FIGSIZE,
    dpi: int = DEFAULT_DPI,
) -> None:
    """
    Draw a quantile curve and write it to ``fp`` as PNG.

    Args:
        curve: (rank, value) pairs, as produced by quantile_curve.
        fp: Binary stream to write the image to.
        title: Optional plot title.
        figsize: Figure size in inches.
        dpi: Resolution in dots per inch.

    Raises:
        ValueError: If the curve is empty.
    """
    if not curve:
        raise ValueError("Cannot render an empty quantile curve")

    ranks = [q for q, _ in curve]
    values = [v for _, v in curve]

    fig = Figure(figsize=figsize, dpi=dpi)
    FigureCanvasAgg(fig)
    ax = fig.add_subplot(1, 1, 1)
    ax.plot(ranks, values, linewidth=1.5)
    ax.set_xlabel("quantile")
    ax.set_ylabel("value")
    ax.set_xlim(0.0, 1.0)
    ax.grid(True, alpha=0.3)
    if title:
        ax.set_title(title)

    fig.savefig(fp, format="png")
    logger.debug("Rendered quantile curve with %d points", len(curve))
