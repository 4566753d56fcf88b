"""Figures and tables the dashboard page renders from session state."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Tuple

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .session import ConnectionStatus, DistanceRecord

STATUS_COLORS = {
    ConnectionStatus.CONNECTED: "green",
    ConnectionStatus.SIMULATING: "violet",
    ConnectionStatus.CONNECTING: "orange",
    ConnectionStatus.DISCONNECTED: "red",
    ConnectionStatus.ERROR: "red",
}


def distance_band(value: float, critical: float = 15, warning: float = 50) -> Tuple[str, str]:
    """Alert label and colour for a reading."""
    if value < critical:
        return "CRITICAL", "#ef4444"
    if value < warning:
        return "WARNING", "#f59e0b"
    return "SAFE", "#10b981"


def status_badge(status: ConnectionStatus) -> str:
    return f":{STATUS_COLORS[status]}[● {status.value}]"


def gauge_figure(value: float, max_cm: float = 200, critical: float = 15, warning: float = 50) -> go.Figure:
    label, color = distance_band(value, critical, warning)
    fig = go.Figure(
        go.Indicator(
            mode="gauge+number",
            value=min(max(value, 0), max_cm),
            number={"suffix": " cm", "valueformat": ".1f"},
            title={"text": label},
            gauge={
                "axis": {"range": [0, max_cm]},
                "bar": {"color": color},
                "steps": [
                    {"range": [0, critical], "color": "rgba(239,68,68,0.15)"},
                    {"range": [critical, warning], "color": "rgba(245,158,11,0.15)"},
                    {"range": [warning, max_cm], "color": "rgba(16,185,129,0.10)"},
                ],
            },
        )
    )
    fig.update_layout(height=320, margin=dict(l=30, r=30, t=60, b=10))
    return fig


def history_figure(df: pd.DataFrame) -> go.Figure:
    fig = px.line(df, x="time", y="value", title="Distance history", height=350)
    top = max(float(df["value"].max()) + 20, 100) if len(df) else 100
    fig.update_layout(
        yaxis=dict(title="cm", range=[0, top], showgrid=True, zeroline=True),
        xaxis=dict(title=None, showgrid=True),
        uirevision="keep",
    )
    return fig


def event_log_frame(records: Iterable[DistanceRecord], limit: int = 60) -> pd.DataFrame:
    """Newest first, formatted for display."""
    rows = [
        {
            "Time": datetime.fromtimestamp(r.timestamp / 1000).strftime("%H:%M:%S"),
            "Distance": f"{r.value:.2f} cm",
        }
        for r in reversed(list(records))
    ]
    return pd.DataFrame(rows[:limit], columns=["Time", "Distance"])
