"""
LISA Linked Views - Streamlit Application

Interactive UI layer for exploring a local spatial autocorrelation result
set. All coordination state lives in a ViewCoordinator kept in the session.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional
import sys

import streamlit as st

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import Config, configure_logging
from core.coordinator import ViewCoordinator
from core.errors import LayoutConfigurationError
from core.visualizations import (
    create_cluster_map,
    create_dual_density,
    create_moran_density,
    create_moran_scatter,
    create_permutation_density,
    create_radial_neighbor_plot,
    picked_ids,
)


# ------------------------------------------------------------------
# Page configuration
# ------------------------------------------------------------------
CONFIG = Config.load()
configure_logging(CONFIG.app.log_level)

st.set_page_config(
    page_title=CONFIG.app.title,
    page_icon=CONFIG.app.page_icon,
    layout=CONFIG.app.layout,
    initial_sidebar_state="expanded",
)

COORDINATOR_KEY = "coordinator"
FEATURES_KEY = "features"
FOCUS_KEY = "focus_picker"
SCATTER_PICK_KEY = "scatter_pick"


def init_session_state() -> None:
    if COORDINATOR_KEY not in st.session_state:
        st.session_state[COORDINATOR_KEY] = ViewCoordinator(CONFIG.view)

    if FEATURES_KEY not in st.session_state:
        st.session_state[FEATURES_KEY] = None


def read_json_upload(upload) -> Optional[Any]:
    if upload is None:
        return None
    try:
        return json.loads(upload.getvalue())
    except json.JSONDecodeError as exc:
        st.sidebar.error(f"{upload.name} is not valid JSON: {exc}")
        return None


# ------------------------------------------------------------------
# Sidebar
# ------------------------------------------------------------------
def render_sidebar() -> None:
    coordinator: ViewCoordinator = st.session_state[COORDINATOR_KEY]
    st.sidebar.header("Data")

    results_file = st.sidebar.file_uploader("Results (JSON)", type="json")
    features_file = st.sidebar.file_uploader("Features (GeoJSON)", type=["json", "geojson"])
    centroids_file = st.sidebar.file_uploader("Centroids (JSON, optional)", type="json")
    angles_file = st.sidebar.file_uploader("Neighbor angles (JSON, optional)", type="json")

    if st.sidebar.button("Load", disabled=results_file is None):
        try:
            graph = coordinator.load(
                read_json_upload(results_file),
                angle_table=read_json_upload(angles_file),
                centroids=read_json_upload(centroids_file),
            )
        except LayoutConfigurationError as exc:
            st.sidebar.error(str(exc))
        else:
            st.session_state[FEATURES_KEY] = read_json_upload(features_file)
            st.sidebar.success(f"Loaded {len(graph)} results ({len(graph.valid_subset())} valid)")

    graph = coordinator.graph
    if not len(graph):
        return

    st.sidebar.header("Selection")
    options: List[Any] = [None] + [r.id for r in graph.valid_subset()]
    focus = st.sidebar.selectbox(
        "Focus", options, key=FOCUS_KEY, format_func=lambda v: "(none)" if v is None else str(v)
    )
    coordinator.selection.hover(focus)

    col1, col2, col3 = st.sidebar.columns(3)
    if col1.button("Toggle", disabled=focus is None):
        coordinator.selection.toggle(focus)
    if col2.button("Cascade", disabled=focus is None):
        coordinator.selection.cascade_select(focus)
    if col3.button("Clear"):
        coordinator.selection.clear()

    st.sidebar.caption(f"{len(coordinator.selection.selected)} selected")


# ------------------------------------------------------------------
# Views
# ------------------------------------------------------------------
def render_views() -> None:
    coordinator: ViewCoordinator = st.session_state[COORDINATOR_KEY]
    graph = coordinator.graph
    if not len(graph):
        st.info("Upload a results file in the sidebar to begin.")
        return

    selection = coordinator.selection
    focus = selection.focus
    z_extent = coordinator.z_extent

    left, right = st.columns([1, 2])
    with left:
        st.plotly_chart(
            create_dual_density(coordinator.z_curve, coordinator.lag_curve, graph, focus, CONFIG.colors),
            use_container_width=True,
        )
        result = graph.get(focus)
        if result is not None and result.valid:
            st.plotly_chart(create_moran_density(coordinator.z_curve, result, CONFIG.colors), use_container_width=True)
        if result is not None and result.has_distribution:
            st.plotly_chart(create_permutation_density(result, CONFIG.colors), use_container_width=True)

        event = st.plotly_chart(
            create_moran_scatter(graph, selection, CONFIG.colors, z_extent),
            use_container_width=True,
            on_select="rerun",
            key="moran_scatter",
        )
        handle_scatter_selection(event)

        if focus is not None:
            st.plotly_chart(
                create_radial_neighbor_plot(coordinator.radial(focus), z_extent, CONFIG.colors),
                use_container_width=True,
            )

    with right:
        features: Optional[Dict[str, Any]] = st.session_state[FEATURES_KEY]
        if features:
            st.plotly_chart(create_cluster_map(graph, features, selection, CONFIG.colors), use_container_width=True)
        else:
            st.caption("No features uploaded; cluster map hidden.")


def handle_scatter_selection(event) -> None:
    """Toggle the results picked on the scatter plot."""
    coordinator: ViewCoordinator = st.session_state[COORDINATOR_KEY]
    picked = picked_ids(event)
    if not picked:
        st.session_state.pop(SCATTER_PICK_KEY, None)
        return
    if picked == st.session_state.get(SCATTER_PICK_KEY):
        return
    st.session_state[SCATTER_PICK_KEY] = picked
    by_key = {str(r.id): r.id for r in coordinator.graph.valid_subset()}
    for key in picked:
        if key in by_key:
            coordinator.selection.toggle(by_key[key])


# ------------------------------------------------------------------
# Main
# ------------------------------------------------------------------
def main() -> None:
    init_session_state()
    render_sidebar()
    st.title(CONFIG.app.title)
    render_views()


if __name__ == "__main__":
    main()
