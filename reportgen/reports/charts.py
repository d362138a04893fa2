"""Chart synthesis for the competency report.

Renders score data into square PNG images that the template embeds as data
URIs. Figures are built on the Agg backend without pyplot, so no global
figure state is shared between concurrent reports.
"""

from __future__ import annotations

import base64
import io
import math
from collections.abc import Sequence

import matplotlib

matplotlib.use("Agg")  # Non-interactive backend

import numpy as np  # noqa: E402
import structlog  # noqa: E402
from matplotlib.figure import Figure  # noqa: E402

from reportgen.exceptions import ChartRenderError  # noqa: E402
from reportgen.reports.contract import GapEntry  # noqa: E402

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Canvas and palette
# ---------------------------------------------------------------------------
CHART_SIZE_PX = 600
_DPI = 100

CYAN = "#00BCD4"
BLUE = "#0066CC"
TEXT_COLOR = "#333333"
GRID_COLOR = "#E5E5E5"

SERIES_COLORS = [CYAN, BLUE, "#9C27B0", "#FF9800", "#4CAF50"]

AXIS_MIN, AXIS_MAX = 0, 10
RADAR_TICK_STEP = 2

# Shown when the record asks for a radar chart without usable data
PLACEHOLDER_LABELS = ["Item 1", "Item 2", "Item 3", "Item 4", "Item 5"]
PLACEHOLDER_SERIES = [8.0, 6.0, 7.0, 5.0, 9.0]

# No timestamps or software tags, so identical input gives identical bytes
_PNG_METADATA = {"Software": None}


def to_data_uri(png: bytes) -> str:
    """Encode PNG bytes as a data URI."""
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


def _clamp(value: float) -> float:
    return max(AXIS_MIN, min(AXIS_MAX, float(value)))


def _new_figure(dataset: str) -> Figure:
    """Create a square figure or raise ChartRenderError."""
    size_in = CHART_SIZE_PX / _DPI
    try:
        return Figure(figsize=(size_in, size_in), dpi=_DPI)
    except Exception as e:
        raise ChartRenderError(dataset, str(e)) from e


def _export(fig: Figure, dataset: str) -> bytes:
    buf = io.BytesIO()
    try:
        fig.savefig(
            buf,
            format="png",
            dpi=_DPI,
            transparent=True,
            metadata=_PNG_METADATA,
        )
    except Exception as e:
        raise ChartRenderError(dataset, str(e)) from e
    return buf.getvalue()


def normalize_radar_input(
    labels: Sequence[str] | None,
    series: Sequence[Sequence[float] | None] | None,
) -> tuple[list[str], list[list[float]]]:
    """
    Reconcile radar labels and series.

    Missing or empty series fall back to the placeholder profile. When
    lengths disagree, every series and the labels are cut to the shortest
    length. Values are clamped to the axis range.
    """
    usable = [list(s) for s in (series or []) if s]
    if not usable:
        usable = [list(PLACEHOLDER_SERIES)]
        if not labels:
            labels = PLACEHOLDER_LABELS

    longest = max(len(s) for s in usable)
    labels = list(labels or [f"Item {i + 1}" for i in range(longest)])

    length = min(len(labels), *(len(s) for s in usable))
    if length == 0:
        return list(PLACEHOLDER_LABELS), [list(PLACEHOLDER_SERIES)]

    return labels[:length], [[_clamp(v) for v in s[:length]] for s in usable]


def render_radar(
    labels: Sequence[str] | None,
    series: Sequence[Sequence[float] | None] | None,
    series_names: Sequence[str] | None = None,
) -> bytes:
    """
    Render a radar (spider) chart of one or more score profiles.

    Args:
        labels: Axis labels, one per competency
        series: Score profiles on a 0-10 scale
        series_names: Optional legend entries, defaults to "Profile", "Profile 2", ...

    Returns:
        PNG image bytes

    Raises:
        ChartRenderError: if the drawing surface cannot be created or encoded
    """
    labels, series = normalize_radar_input(labels, series)
    names = list(series_names or [])
    names += [
        "Profile" if i == 0 else f"Profile {i + 1}" for i in range(len(names), len(series))
    ]

    num_vars = len(labels)
    angles = np.linspace(0, 2 * math.pi, num_vars, endpoint=False).tolist()
    angles_closed = angles + angles[:1]

    fig = _new_figure("radar")
    try:
        ax = fig.add_subplot(projection="polar")
        ax.set_theta_offset(math.pi / 2)
        ax.set_theta_direction(-1)

        ax.set_xticks(angles)
        ax.set_xticklabels(labels, fontsize=11, color=TEXT_COLOR)

        ticks = list(range(AXIS_MIN + RADAR_TICK_STEP, AXIS_MAX + 1, RADAR_TICK_STEP))
        ax.set_ylim(AXIS_MIN, AXIS_MAX)
        ax.set_yticks(ticks)
        ax.set_yticklabels([str(t) for t in ticks], fontsize=8, color="grey")
        ax.grid(color=GRID_COLOR, linewidth=1)

        for i, (values, name) in enumerate(zip(series, names, strict=False)):
            color = SERIES_COLORS[i % len(SERIES_COLORS)]
            closed = values + values[:1]
            ax.plot(angles_closed, closed, color=color, linewidth=2, label=name)
            ax.fill(angles_closed, closed, color=color, alpha=0.2)
            ax.scatter(angles, values, color=color, s=20, zorder=3)

        ax.legend(loc="upper center", bbox_to_anchor=(0.5, 1.12), frameon=False, ncol=2)
        fig.tight_layout()
        png = _export(fig, "radar")
    except ChartRenderError:
        raise
    except Exception as e:
        raise ChartRenderError("radar", str(e)) from e
    finally:
        fig.clear()

    logger.debug("radar_chart_rendered", axes=num_vars, series=len(series), bytes=len(png))
    return png


def render_gap_bars(entries: Sequence[GapEntry]) -> bytes:
    """
    Render required vs. actual levels as paired bars.

    Args:
        entries: Gap analysis rows

    Returns:
        PNG image bytes

    Raises:
        ChartRenderError: if there is nothing to draw or the surface fails
    """
    if not entries:
        raise ChartRenderError("gap_analysis", "no entries to plot")

    labels = [entry.competency_name for entry in entries]
    required = [_clamp(entry.required) for entry in entries]
    actual = [_clamp(entry.actual) for entry in entries]

    x = np.arange(len(entries))
    width = 0.38

    fig = _new_figure("gap_analysis")
    try:
        ax = fig.add_subplot()
        for offset, values, label, color in (
            (-width / 2, required, "Required", BLUE),
            (width / 2, actual, "Actual", CYAN),
        ):
            ax.bar(
                x + offset,
                values,
                width,
                label=label,
                color=color,
                alpha=0.5,
                edgecolor=color,
                linewidth=1,
            )

        ax.set_ylim(AXIS_MIN, AXIS_MAX)
        ax.set_yticks(range(AXIS_MIN, AXIS_MAX + 1))
        ax.yaxis.grid(True, color=GRID_COLOR)
        ax.set_axisbelow(True)
        # Slant long label rows so they do not overlap
        crowded = len(labels) > 4
        ax.set_xticks(x)
        ax.set_xticklabels(
            labels,
            rotation=30 if crowded else 0,
            ha="right" if crowded else "center",
            fontsize=9,
            color=TEXT_COLOR,
        )
        for side in ("top", "right"):
            ax.spines[side].set_visible(False)
        ax.legend(loc="upper center", bbox_to_anchor=(0.5, 1.08), frameon=False, ncol=2)
        fig.tight_layout()
        png = _export(fig, "gap_analysis")
    except ChartRenderError:
        raise
    except Exception as e:
        raise ChartRenderError("gap_analysis", str(e)) from e
    finally:
        fig.clear()

    logger.debug("gap_chart_rendered", competencies=len(entries), bytes=len(png))
    return png
