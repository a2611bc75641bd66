"""
Plotly figure builders for the linked LISA views.

Each builder consumes the core's decisions (curves, tiers, angles) and
returns a ``go.Figure``; none of them keeps state between calls.
"""

import math
from typing import Any, Dict, List, Optional, Set, Tuple

import numpy as np
import plotly.graph_objects as go

from config.settings import LABELS, ColorScheme
from core.density import DensityCurve, scale_curve, split_at_cutoffs
from core.polar import RadialGeometry
from core.results import Result, ResultGraph, ResultId
from core.selection import SelectionController

_TRANSPARENT = dict(paper_bgcolor="rgba(0,0,0,0)", plot_bgcolor="rgba(0,0,0,0)")


def _curve_xy(curve: DensityCurve) -> Tuple[List[float], List[float]]:
    return [p[0] for p in curve], [p[1] for p in curve]


def picked_ids(event: Optional[Dict[str, Any]]) -> Set[str]:
    """Result keys (the scatter's customdata) in a Plotly selection event."""
    points = (event or {}).get("selection", {}).get("points", [])
    return {p.get("customdata") for p in points if p.get("customdata") is not None}


def create_moran_scatter(
    graph: ResultGraph,
    selection: Optional[SelectionController] = None,
    colors: Optional[ColorScheme] = None,
    z_extent: Optional[Tuple[float, float]] = None,
) -> go.Figure:
    """Moran scatter (z vs spatial lag) with neighbor links for active results."""

    colors = colors or ColorScheme()
    results = graph.valid_subset()
    z_extent = z_extent or graph.z_extent() or (-1.0, 1.0)
    states = selection.visual_state() if selection is not None else {}

    fig = go.Figure()

    if selection is not None:
        link_x: List[Optional[float]] = []
        link_y: List[Optional[float]] = []
        for result_id in selection.active_ids():
            focal = graph.get(result_id)
            if focal is None or not focal.valid:
                continue
            for slot in graph.neighbors_of(result_id):
                if slot.result is None or not slot.result.valid:
                    continue
                link_x += [focal.z, slot.result.z, None]
                link_y += [focal.lag, slot.result.lag, None]
        if link_x:
            fig.add_trace(
                go.Scatter(
                    x=link_x, y=link_y, mode="lines", name="Neighbors",
                    line=dict(color=colors.connection, width=1),
                    opacity=0.5, hoverinfo="skip", showlegend=False,
                )
            )

    sizes, opacities, fills = [], [], []
    for r in results:
        state = states.get(r.id)
        sizes.append(2 * (state.radius if state else 2.0))
        opacities.append(state.opacity if state else 0.5)
        in_domain = z_extent[0] <= r.z <= z_extent[1]
        fills.append(colors.color_for(r.label, point_mode=True) if in_domain else "rgba(0,0,0,0)")

    fig.add_trace(
        go.Scatter(
            x=[r.z for r in results],
            y=[r.lag for r in results],
            mode="markers",
            name="Results",
            customdata=[str(r.id) for r in results],
            marker=dict(size=sizes, opacity=opacities, color=fills, line=dict(width=0)),
            hovertemplate="%{customdata}<br>z=%{x:.3f}<br>lag=%{y:.3f}<extra></extra>",
        )
    )

    for text, x_anchor, y_anchor, x, y in (
        ("High-high", "right", "top", 1, 1),
        ("High-low", "right", "bottom", 1, 0),
        ("Low-high", "left", "top", 0, 1),
        ("Low-low", "left", "bottom", 0, 0),
    ):
        fig.add_annotation(
            text=f"<b>{text}</b>", xref="paper", yref="paper", x=x, y=y,
            xanchor=x_anchor, yanchor=y_anchor, showarrow=False, opacity=0.5,
            font=dict(color=colors.color_for(text)),
        )

    fig.add_hline(y=0, line_color="black", opacity=0.2)
    fig.add_vline(x=0, line_color="black", opacity=0.2)
    fig.update_layout(
        xaxis=dict(title="Value (z)", range=list(z_extent), zeroline=False),
        yaxis=dict(title="Spatial lag", range=list(z_extent), zeroline=False),
        showlegend=False,
        margin=dict(l=20, r=20, t=20, b=20),
        **_TRANSPARENT,
    )
    return fig


def create_dual_density(
    z_curve: DensityCurve,
    lag_curve: Optional[DensityCurve] = None,
    graph: Optional[ResultGraph] = None,
    focus_id: Optional[ResultId] = None,
    colors: Optional[ColorScheme] = None,
    lag_display: str = "stroke",
) -> go.Figure:
    """Value and lag densities, plus the focused result and its neighbors."""

    colors = colors or ColorScheme()
    fig = go.Figure()

    zx, zy = _curve_xy(z_curve)
    fig.add_trace(
        go.Scatter(
            x=zx, y=zy, mode="lines", name="Value (z)", fill="tozeroy",
            line=dict(color=colors.distribution, shape="spline"), opacity=0.5,
        )
    )

    y_values = list(zy)
    if lag_curve:
        lx, ly = _curve_xy(lag_curve)
        y_values += ly
        if lag_display == "fill":
            fig.add_trace(
                go.Scatter(
                    x=lx, y=ly, mode="lines", name="Spatial lag", fill="tozeroy",
                    line=dict(color=colors.connection, width=0), opacity=0.08,
                )
            )
        elif lag_display == "stroke":
            fig.add_trace(
                go.Scatter(
                    x=lx, y=ly, mode="lines", name="Spatial lag",
                    line=dict(color=colors.connection, dash="dash"), opacity=0.3,
                )
            )
    y_max = max(y_values) if y_values else 1.0

    result = graph.get(focus_id) if graph is not None else None
    if result is not None and result.valid:
        neighbors = [s.result for s in graph.neighbors_of(focus_id) if s.result is not None and s.result.z is not None]
        if neighbors:
            fig.add_trace(
                go.Scatter(
                    x=[n.z for n in neighbors], y=[y_max * 0.4] * len(neighbors),
                    mode="markers", name="Neighbors",
                    marker=dict(color="black", size=4, opacity=0.7),
                )
            )
            for n in neighbors:
                fig.add_shape(
                    type="line", x0=n.z, y0=y_max * 0.4, x1=result.lag, y1=0,
                    line=dict(color="black", dash="dot", width=1), opacity=0.4,
                )
        fig.add_annotation(
            x=result.z, y=y_max, ax=0, ay=y_max, axref="x", ayref="y",
            showarrow=True, arrowhead=2, arrowcolor="black", text="",
        )
        fig.add_trace(
            go.Scatter(
                x=[result.z], y=[y_max], mode="markers+text", text=["z"],
                textposition="middle right" if result.z > 0 else "middle left",
                marker=dict(color="black", size=7), name="Focus",
            )
        )

    fig.add_vline(x=0, line_width=0.5, opacity=0.3)
    fig.update_layout(
        xaxis=dict(visible=False),
        yaxis=dict(visible=False),
        showlegend=False,
        margin=dict(l=20, r=20, t=10, b=10),
        **_TRANSPARENT,
    )
    return fig


def area_colors(result: Result, colors: ColorScheme, mode: str = "cluster_labels") -> Dict[str, str]:
    """
    Colours and labels for the positive/negative significance areas.

    Modes: ``cluster_labels``, ``positive_negative`` or ``hot_cold``.
    """
    hot = result.z is not None and result.z > 0
    if mode == "positive_negative":
        return {
            "positive_color": colors.positive_autocorrelation,
            "negative_color": colors.negative_autocorrelation,
            "positive_label": "Positive",
            "negative_label": "Negative",
        }
    if mode == "hot_cold":
        return {
            "positive_color": colors.high_high if hot else colors.low_low,
            "negative_color": colors.outlier,
            "positive_label": "Hot-spot" if hot else "Cold-spot",
            "negative_label": "Outlier",
        }
    if mode == "cluster_labels":
        return {
            "positive_color": colors.high_high if hot else colors.low_low,
            "negative_color": colors.high_low if hot else colors.low_high,
            "positive_label": "High-high" if hot else "Low-low",
            "negative_label": "High-low" if hot else "Low-high",
        }
    raise ValueError(f"Unknown area mode: {mode}")


def create_permutation_density(
    result: Result,
    colors: Optional[ColorScheme] = None,
    area_mode: str = "cluster_labels",
) -> go.Figure:
    """Permutation distribution of the local statistic with significant tails filled."""

    colors = colors or ColorScheme()
    fig = go.Figure()
    if not result.has_distribution:
        fig.update_layout(xaxis=dict(visible=False), yaxis=dict(visible=False), **_TRANSPARENT)
        return fig

    areas = area_colors(result, colors, area_mode)
    curve = sorted(result.permutation_distribution)
    if result.has_cutoffs:
        curve, below, above = split_at_cutoffs(curve, result.lower_cutoff, result.upper_cutoff)
    else:
        below, above = [], []
    curve = [p for p in curve if not math.isnan(p[1])]

    x, y = _curve_xy(curve)
    fig.add_trace(
        go.Scatter(
            x=x, y=y, mode="lines", fill="tozeroy", name="Permutations",
            line=dict(color=colors.distribution, shape="spline"),
        )
    )
    for segment, color in ((below, areas["negative_color"]), (above, areas["positive_color"])):
        if segment:
            sx, sy = _curve_xy(segment)
            fig.add_trace(
                go.Scatter(
                    x=sx, y=sy, mode="lines", fill="tozeroy", line=dict(color=color, width=0),
                    opacity=0.7, showlegend=False, hoverinfo="skip",
                )
            )

    fig.add_vline(x=result.statistic, line_color=colors.connection, line_dash="dash")
    axis_label = "← Local Moran's I" if result.z < 0 else "Local Moran's I →"
    fig.update_layout(
        xaxis=dict(title=axis_label, autorange="reversed" if result.z < 0 else True),
        yaxis=dict(visible=False, autorange="reversed"),
        showlegend=False,
        margin=dict(l=20, r=20, t=10, b=30),
        **_TRANSPARENT,
    )
    return fig


def create_moran_density(
    z_curve: DensityCurve,
    result: Result,
    colors: Optional[ColorScheme] = None,
    area_mode: str = "cluster_labels",
) -> go.Figure:
    """
    Value density rescaled by the result's own z, so its x axis is in units of
    the local statistic. Tails beyond the permutation cutoffs are filled.
    """

    colors = colors or ColorScheme()
    fig = go.Figure()
    if not z_curve or not result.valid or not result.z:
        fig.update_layout(xaxis=dict(visible=False), yaxis=dict(visible=False), **_TRANSPARENT)
        return fig

    areas = area_colors(result, colors, area_mode)
    curve = scale_curve(z_curve, result.z)
    if result.has_cutoffs:
        curve, below, above = split_at_cutoffs(curve, result.lower_cutoff, result.upper_cutoff)
    else:
        below, above = [], []
    curve = [p for p in curve if not math.isnan(p[1])]

    x, y = _curve_xy(curve)
    fig.add_trace(
        go.Scatter(
            x=x, y=y, mode="lines", fill="tozeroy", name="Scaled value",
            line=dict(color=colors.distribution, shape="spline"), opacity=0.5,
        )
    )
    for segment, color, name in (
        (below, areas["negative_color"], areas["negative_label"]),
        (above, areas["positive_color"], areas["positive_label"]),
    ):
        if segment:
            sx, sy = _curve_xy(segment)
            fig.add_trace(
                go.Scatter(
                    x=sx, y=sy, mode="lines", fill="tozeroy", name=name,
                    line=dict(color=color, width=0), opacity=0.7, hoverinfo="skip",
                )
            )

    fig.add_vline(x=result.statistic, line_color=colors.connection)
    axis_label = "← Local Moran's I" if result.z < 0 else "Local Moran's I →"
    fig.update_layout(
        xaxis=dict(title=axis_label),
        yaxis=dict(visible=False),
        showlegend=False,
        margin=dict(l=20, r=20, t=10, b=30),
        **_TRANSPARENT,
    )
    return fig


def create_radial_neighbor_plot(
    geometry: Optional[RadialGeometry],
    z_extent: Tuple[float, float],
    colors: Optional[ColorScheme] = None,
) -> go.Figure:
    """Neighbors of one result placed by angle, at a radius given by their z."""

    colors = colors or ColorScheme()
    fig = go.Figure()
    if geometry is not None:
        theta = np.linspace(0, 360, 73)
        fig.add_trace(
            go.Scatterpolar(
                r=[geometry.lag_radius] * len(theta), theta=theta, mode="lines",
                line=dict(color=colors.connection, dash="dot"), name="Lag", hoverinfo="skip",
            )
        )
        for x0, y0, x1, y1 in geometry.spokes:
            fig.add_trace(
                go.Scatterpolar(
                    r=[math.hypot(x0, y0), math.hypot(x1, y1)],
                    theta=[math.degrees(math.atan2(x0, -y0))] * 2,
                    mode="lines", line=dict(color="#ededed"), showlegend=False, hoverinfo="skip",
                )
            )
        if geometry.points:
            bound = max(abs(z_extent[0]), abs(z_extent[1])) or 1.0
            fig.add_trace(
                go.Scatterpolar(
                    r=[math.hypot(p.x, p.y) for p in geometry.points],
                    theta=[math.degrees(p.angle) for p in geometry.points],
                    mode="markers",
                    customdata=[str(p.id) for p in geometry.points],
                    marker=dict(
                        size=[2 * p.radius for p in geometry.points],
                        color=[p.z for p in geometry.points],
                        colorscale="RdYlBu", reversescale=True, cmin=-bound, cmax=bound,
                        line=dict(color="grey", width=1),
                    ),
                    hovertemplate="%{customdata}<extra></extra>",
                    name="Neighbors",
                )
            )

    fig.update_layout(
        polar=dict(
            angularaxis=dict(rotation=90, direction="clockwise", visible=False),
            radialaxis=dict(visible=False),
        ),
        showlegend=False,
        margin=dict(l=5, r=5, t=5, b=5),
        **_TRANSPARENT,
    )
    return fig


def create_cluster_map(
    graph: ResultGraph,
    features: Dict[str, Any],
    selection: Optional[SelectionController] = None,
    colors: Optional[ColorScheme] = None,
) -> go.Figure:
    """Choropleth of cluster labels; focused and selected areas are outlined."""

    colors = colors or ColorScheme()
    feature_ids = [f.get("id") for f in features.get("features", [])]
    active = selection.active_ids() if selection is not None else set()
    fig = go.Figure()

    for label in LABELS:
        ids = [
            fid for fid in feature_ids
            if (graph.get(fid) is not None and graph.get(fid).label == label)
        ]
        if not ids:
            continue
        outline = [colors.highlight if fid in active else "lightgrey" for fid in ids]
        widths = [3 if color == colors.highlight else 1 for color in outline]
        fill = colors.color_for(label)
        fig.add_trace(
            go.Choropleth(
                geojson=features,
                locations=ids,
                featureidkey="id",
                z=[1] * len(ids),
                colorscale=[[0, fill], [1, fill]],
                showscale=False,
                name=label,
                marker=dict(line=dict(color=outline, width=widths)),
                hovertemplate="%{location}<extra>" + label + "</extra>",
            )
        )

    fig.update_geos(fitbounds="locations", visible=False)
    fig.update_layout(margin=dict(l=0, r=0, t=0, b=0), **_TRANSPARENT)
    return fig
