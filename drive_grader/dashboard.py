"""
Dash dashboard over the persisted grading reports.

Serves a JSON API (results and watcher configuration) on the Dash Flask
server, and a page with summary cards, a score chart and a results table.

Run with: python main.py dashboard
"""

import logging
import os
from pathlib import Path

import pandas as pd
import plotly.express as px
from dash import Dash, dash_table, dcc, html
from dash.dependencies import Input, Output
from dotenv import dotenv_values, set_key
from flask import jsonify, request, send_from_directory

from .config import DEFAULT_POLLING_INTERVAL_MS, DEFAULT_RUBRIC_FILE
from .models import ReportSummary
from .report import load_reports

logger = logging.getLogger(__name__)

REFRESH_INTERVAL_MS = 30_000
CARD_STYLE = {
    "flex": "1",
    "textAlign": "center",
    "padding": "20px",
    "backgroundColor": "white",
    "borderRadius": "8px",
    "margin": "10px",
    "boxShadow": "0 2px 4px rgba(0,0,0,0.1)",
}
TABLE_COLUMNS = ["File", "Score", "Max Score", "Percentage", "Status", "Graded At"]


def results_frame(summaries: list[ReportSummary]) -> pd.DataFrame:
    """
    Tabulate report summaries for the page.

    Args:
        summaries: Parsed reports, newest first.

    Returns:
        DataFrame with one row per report and TABLE_COLUMNS as columns.
    """
    rows = [
        {
            "File": s.file_name,
            "Score": s.total_score,
            "Max Score": s.max_score,
            "Percentage": s.percentage,
            "Status": "PASSED" if s.passed else "NEEDS IMPROVEMENT",
            "Graded At": s.graded_at,
        }
        for s in summaries
    ]
    return pd.DataFrame(rows, columns=TABLE_COLUMNS)


def _stat_card(value: str, label: str, color: str) -> html.Div:
    return html.Div([
        html.H3(value, style={"color": color, "margin": "0"}),
        html.P(label, style={"color": "#7f8c8d", "margin": "0"}),
    ], style=CARD_STYLE)


def _stat_cards(df: pd.DataFrame) -> list[html.Div]:
    avg_score = df["Percentage"].mean() if not df.empty else 0
    passed_count = int((df["Status"] == "PASSED").sum()) if not df.empty else 0
    return [
        _stat_card(str(len(df)), "Graded Submissions", "#2c3e50"),
        _stat_card(f"{avg_score:.1f}%", "Average Score", "#3498db"),
        _stat_card(f"{passed_count}/{len(df)}", "Passed", "#27ae60"),
    ]


def _scores_figure(df: pd.DataFrame):
    return px.bar(
        df.sort_values("Percentage", ascending=False),
        x="File",
        y="Percentage",
        color="Status",
        color_discrete_map={"PASSED": "#27ae60", "NEEDS IMPROVEMENT": "#e74c3c"},
        title="Scores by Submission",
    ).update_layout(
        xaxis_tickangle=-45,
        plot_bgcolor="white",
        yaxis_title="Score (%)",
    )


def current_env(env_file: Path) -> dict[str, str | None]:
    """Settings from the .env file, overridden by the process environment."""
    values = dotenv_values(env_file) if Path(env_file).is_file() else {}
    return {**values, **os.environ}


def update_env_file(env_file: Path, values: dict[str, str]) -> None:
    """
    Write settings into a .env file and the current environment.

    Existing keys are replaced in place; missing keys are appended.
    """
    env_file = Path(env_file)
    env_file.touch(exist_ok=True)
    for key, value in values.items():
        set_key(str(env_file), key, value, quote_mode="never")
        os.environ[key] = value


def create_dashboard(results_dir: Path, env_file: Path) -> Dash:
    """
    Create the dashboard app.

    Args:
        results_dir: Directory holding *_GRADED.txt reports.
        env_file: .env file updated by POST /api/config.

    Returns:
        Dash app; app.server is the underlying Flask app.
    """
    results_dir = Path(results_dir)
    app = Dash(__name__, suppress_callback_exceptions=True)
    server = app.server

    @server.route("/api/results", methods=["GET"])
    def api_results():
        try:
            summaries = load_reports(results_dir)
        except Exception as e:
            logger.error("Error fetching results: %s", e)
            return jsonify({"error": "Failed to fetch results"}), 500
        return jsonify([s.model_dump(by_alias=True) for s in summaries])

    @server.route("/api/config", methods=["GET"])
    def api_get_config():
        values = current_env(env_file)
        return jsonify({
            "folderId": values.get("GOOGLE_DRIVE_FOLDER_ID") or "",
            "rubricFile": values.get("RUBRIC_FILE") or DEFAULT_RUBRIC_FILE,
            "pollingInterval": values.get("POLLING_INTERVAL") or str(DEFAULT_POLLING_INTERVAL_MS),
        })

    @server.route("/api/config", methods=["POST"])
    def api_update_config():
        body = request.get_json(silent=True) or {}
        folder_id = body.get("folderId")
        rubric_file = body.get("rubricFile")

        if not folder_id or not rubric_file:
            return jsonify({"error": "folderId and rubricFile are required"}), 400

        try:
            update_env_file(env_file, {"GOOGLE_DRIVE_FOLDER_ID": folder_id, "RUBRIC_FILE": rubric_file})
        except OSError as e:
            logger.error("Error updating config: %s", e)
            return jsonify({"error": "Failed to update configuration"}), 500

        return jsonify({
            "success": True,
            "message": "Configuration updated. Please restart the file watcher for changes to take effect.",
            "config": {"folderId": folder_id, "rubricFile": rubric_file},
        })

    # Raw report files
    @server.route("/files/<path:path>")
    def serve_files(path):
        return send_from_directory(results_dir.resolve(), path)

    app.layout = html.Div([
        # Header
        html.Div([
            html.H1("Grading Dashboard", style={"color": "#2c3e50", "marginBottom": "5px"}),
            html.P(f"Reports from {results_dir}", style={"color": "#7f8c8d", "fontSize": "14px"}),
        ], style={"textAlign": "center", "padding": "20px", "backgroundColor": "#ecf0f1"}),

        html.Div(id="stats", style={"display": "flex", "justifyContent": "center", "padding": "10px 20px"}),

        html.Div([dcc.Graph(id="scores-bar")], style={"padding": "10px 20px"}),

        html.Div([
            html.H3("Graded Submissions", style={"color": "#2c3e50", "marginBottom": "10px"}),
            dash_table.DataTable(
                id="results-table",
                columns=[{"name": col, "id": col} for col in TABLE_COLUMNS],
                sort_action="native",
                filter_action="native",
                style_table={"overflowX": "auto"},
                style_cell={"textAlign": "left", "padding": "10px", "fontSize": "14px"},
                style_header={"backgroundColor": "#3498db", "color": "white", "fontWeight": "bold"},
                style_data_conditional=[
                    {"if": {"filter_query": '{Status} = "NEEDS IMPROVEMENT"'}, "backgroundColor": "#fadbd8"},
                    {"if": {"filter_query": "{Percentage} >= 90"}, "backgroundColor": "#d5f5e3"},
                ],
            ),
        ], style={"padding": "10px 20px"}),

        dcc.Interval(id="refresh", interval=REFRESH_INTERVAL_MS, n_intervals=0),
    ])

    @app.callback(
        Output("stats", "children"),
        Output("scores-bar", "figure"),
        Output("results-table", "data"),
        Input("refresh", "n_intervals"),
    )
    def refresh(_n_intervals):
        df = results_frame(load_reports(results_dir))
        return _stat_cards(df), _scores_figure(df), df.round(2).to_dict("records")

    return app
