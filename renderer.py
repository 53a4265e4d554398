"""
Renderer for the three metric charts and the status indicator.

The renderer owns the Plotly figures. The first non-empty sample window
builds them; later windows overwrite their traces in place so the user's
pan/zoom survives a redraw (``uirevision``). Drawing goes through a
``Surface``: one slot per chart plus an indicator slot. In the app those are
``st.empty()`` placeholders; anything with ``plotly_chart`` / ``markdown``
works.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
import plotly.graph_objects as go

import dashboard_config as cfg
from samples import Sample, format_time

log = logging.getLogger(__name__)

STRESSED_GLYPH = "😟"
CALM_GLYPH = "😊"
NO_DATA_TEXT = "No data 🔄"
ERROR_TEXT = "Error 🔄"
WAITING_TEXT = "Waiting for data…"

# Wheel zoom on desktop, pinch zoom on touch
PLOT_CONFIG = {"scrollZoom": True, "displaylogo": False}


@dataclass(frozen=True)
class ChartSpec:
    key: str
    label: str
    axis_title: str
    color: str
    fill_color: str
    series: str


CHART_SPECS = (
    ChartSpec("stress", "Stress Status", "Stress (0=No, 1=Yes)",
              "red", "rgba(255, 0, 0, 0.1)", "stressed"),
    ChartSpec("temperature", "Temperature (°C)", "Temperature (°C)",
              "orange", "rgba(255, 165, 0, 0.1)", "temperature"),
    ChartSpec("heart-rate", "Heart Rate (BPM)", "Heart Rate (BPM)",
              "blue", "rgba(0, 0, 255, 0.1)", "heart_rate"),
)


@dataclass(frozen=True)
class SeriesSet:
    """Index-aligned columns derived from one sample window."""

    labels: List[str]
    stressed: List[bool]
    temperature: List[float]
    heart_rate: List[float]

    def __len__(self) -> int:
        return len(self.labels)

    def values_for(self, spec: ChartSpec) -> List[Any]:
        values = getattr(self, spec.series)
        if spec.series == "stressed":
            return [int(v) for v in values]
        return list(values)


def derive_series(samples: Sequence[Sample]) -> SeriesSet:
    df = pd.DataFrame(
        {
            "time": [s.timestamp for s in samples],
            "stressed": [s.stressed for s in samples],
            "temperature": [s.temperature for s in samples],
            "heart_rate": [s.heart_rate for s in samples],
        }
    )
    return SeriesSet(
        labels=[format_time(ts) for ts in df["time"]],
        stressed=[bool(v) for v in df["stressed"]],
        temperature=df["temperature"].tolist(),
        heart_rate=df["heart_rate"].tolist(),
    )


def indicator_for(stressed: bool) -> str:
    return STRESSED_GLYPH if stressed else CALM_GLYPH


def build_figure(spec: ChartSpec, labels: List[str], values: List[Any]) -> go.Figure:
    fig = go.Figure(
        go.Scatter(
            x=labels,
            y=values,
            mode="lines",
            name=spec.label,
            line=dict(color=spec.color, width=2, shape="spline", smoothing=cfg.LINE_SMOOTHING),
            fill="none",
            fillcolor=spec.fill_color,
            showlegend=True,
        )
    )
    yaxis = dict(title=dict(text=spec.axis_title), showgrid=True, zeroline=True, fixedrange=True)
    if spec.series == "stressed":
        yaxis.update(range=[-0.1, 1.1], tickvals=[0, 1])
    fig.update_layout(
        height=cfg.CHART_HEIGHT,
        dragmode="pan",
        xaxis=dict(title=dict(text="Time"), showgrid=True),
        yaxis=yaxis,
        uirevision=spec.key,  # preserve zoom/viewport
        transition=dict(duration=200),
        legend=dict(orientation="h", y=1.1),
        margin=dict(l=40, r=20, t=40, b=40),
    )
    return fig


@dataclass
class Surface:
    """Where the renderer draws: chart slots keyed like ``CHART_SPECS`` plus the indicator."""

    indicator: Any
    charts: Dict[str, Any] = field(default_factory=dict)


class Renderer:
    """Three charts and one indicator reflecting the latest sample window.

    Uninitialized until the first non-empty ``render``; after that the same
    three figures are mutated for the rest of the session.
    """

    def __init__(self, surface: Optional[Surface] = None):
        self.surface = surface
        self.charts: Dict[str, go.Figure] = {}
        self.indicator_text = WAITING_TEXT
        self._painted: Dict[str, tuple] = {}

    @property
    def initialized(self) -> bool:
        return bool(self.charts)

    def bind(self, surface: Surface):
        """Attach a fresh surface and repaint whatever state we hold."""
        self.surface = surface
        self._painted = {}
        self._paint_indicator()
        self._paint_charts()

    def render(self, samples: Optional[Sequence[Sample]]):
        if not samples:
            log.info("No data received")
            self._set_indicator(NO_DATA_TEXT)
            return

        series = derive_series(samples)
        latest = series.stressed[-1]
        log.debug("Latest stress: %s", latest)
        self._set_indicator(indicator_for(latest))

        if not self.charts:
            log.info("Creating new charts")
            for spec in CHART_SPECS:
                self.charts[spec.key] = build_figure(spec, series.labels, self._aligned(series, spec))
        else:
            log.debug("Updating existing charts")
            for spec in CHART_SPECS:
                trace = self.charts[spec.key].data[0]
                trace.x = series.labels
                trace.y = self._aligned(series, spec)
        self._paint_charts()

    def show_error(self):
        self._set_indicator(ERROR_TEXT)

    @staticmethod
    def _aligned(series: SeriesSet, spec: ChartSpec) -> List[Any]:
        values = series.values_for(spec)
        if len(values) != len(series.labels):
            raise ValueError(
                f"{spec.key} series has {len(values)} points for {len(series.labels)} labels"
            )
        return values

    def _set_indicator(self, text: str):
        self.indicator_text = text
        self._paint_indicator()

    def _paint_indicator(self):
        if self.surface is None:
            return
        self.surface.indicator.markdown(f"## {self.indicator_text}")

    def _paint_charts(self):
        if self.surface is None or not self.charts:
            return
        for key, fig in self.charts.items():
            slot = self.surface.charts.get(key)
            if slot is None:
                continue
            trace = fig.data[0]
            state = (tuple(trace.x), tuple(trace.y))
            # A placeholder only redraws when its content changed
            if self._painted.get(key) == state:
                continue
            slot.plotly_chart(fig, use_container_width=True, config=PLOT_CONFIG)
            self._painted[key] = state
