import argparse
import json
from pathlib import Path
from typing import Any, Dict

from flask import Flask, abort, jsonify, render_template_string, request

from analysis_core import METRICS, format_value


HTML_TEMPLATE = """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <title>Route Analytics</title>
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <style>
    :root { --bg: #f8fafc; --bg2: #ffffff; --text: #1e293b; --muted: #64748b; --border: #e2e8f0; --accent: #3b82f6; }
    * { box-sizing: border-box; margin: 0; padding: 0; }
    body { font-family: 'Inter', 'Segoe UI', sans-serif; background: var(--bg); color: var(--text); padding: 24px 32px; }
    h2 { font-size: 24px; font-weight: 700; margin-bottom: 8px; }
    .subtle { color: var(--muted); font-size: 12px; margin-bottom: 24px; }
    .grid { display: grid; gap: 20px; grid-template-columns: repeat(auto-fit, minmax(380px, 1fr)); }
    .card { background: var(--bg2); border: 1px solid var(--border); border-radius: 16px; padding: 20px; }
    .card h3 { font-size: 16px; font-weight: 600; margin-bottom: 12px; }
    table { width: 100%; border-collapse: collapse; font-size: 13px; }
    th, td { padding: 8px 12px; text-align: left; border-bottom: 1px solid var(--border); }
    th { font-weight: 600; color: var(--muted); text-transform: uppercase; font-size: 11px; }
    td.value { text-align: right; font-variant-numeric: tabular-nums; }
  </style>
</head>
<body>
  <h2>Route Analytics</h2>
  <p class="subtle">
    format {{ summary.format or "-" }} &middot; {{ summary.total_requests }} requests
    &middot; {{ summary.routes }} routes &middot; {{ summary.parse_errors }} unparseable lines
  </p>
  <div class="grid">
    {% for section in sections %}
    <div class="card">
      <h3>{{ section.title }}</h3>
      <table>
        <tr><th>#</th><th>Route</th><th>Value</th></tr>
        {% for entry in section.entries %}
        <tr><td>{{ entry.rank }}</td><td>{{ entry.route }}</td><td class="value">{{ entry.display }}</td></tr>
        {% endfor %}
      </table>
    </div>
    {% endfor %}
  </div>
</body>
</html>
"""


def load_summary(summary_path: Path) -> Dict[str, Any]:
    if not summary_path.exists():
        abort(404, "Summary JSON not found; run route_analyzer with --output first")
    with open(summary_path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def build_sections(summary: Dict[str, Any]):
    sections = []
    for metric, (title, _, _) in METRICS.items():
        entries = [
            dict(entry, display=format_value(metric, entry["value"]))
            for entry in summary.get("top", {}).get(metric, [])
        ]
        sections.append({"metric": metric, "title": title, "entries": entries})
    return sections


def create_app(summary_path: Path):
    app = Flask(__name__)

    summary_cache = {"data": None, "mtime": 0}

    def get_summary():
        """Load summary with caching based on mtime."""
        if not summary_path.exists():
            return load_summary(summary_path)
        mtime = summary_path.stat().st_mtime
        if summary_cache["data"] is None or mtime > summary_cache["mtime"]:
            summary_cache["data"] = load_summary(summary_path)
            summary_cache["mtime"] = mtime
        return summary_cache["data"]

    @app.get("/")
    def index():
        summary = get_summary()
        return render_template_string(HTML_TEMPLATE, summary=summary, sections=build_sections(summary))

    @app.get("/api/summary")
    def summary():
        return jsonify(get_summary())

    @app.get("/api/meta")
    def meta():
        summary = get_summary()
        return jsonify({
            "format": summary.get("format"),
            "total_requests": summary.get("total_requests", 0),
            "routes": summary.get("routes", 0),
            "parse_errors": summary.get("parse_errors", 0),
            "metrics": list(METRICS),
        })

    @app.get("/api/top/<metric>")
    def top(metric: str):
        if metric not in METRICS:
            abort(404, f"Metric {metric} not found")
        summary = get_summary()
        entries = summary.get("top", {}).get(metric, [])
        k = request.args.get("k")
        if k is not None:
            try:
                entries = entries[:max(0, int(k))]
            except ValueError:
                abort(400, "k must be an integer")
        return jsonify({"metric": metric, "title": METRICS[metric][0], "items": entries})

    @app.get("/api/routes")
    def routes():
        summary = get_summary()
        prefix = request.args.get("prefix", "")
        rows = [row for row in summary.get("rows", []) if row["route"].startswith(prefix)]
        return jsonify({"items": rows, "count": len(rows)})

    return app


def parse_args():
    parser = argparse.ArgumentParser(description="Route analytics dashboard")
    parser.add_argument("--summary", default="reports/route_summary.json", help="Path to summary JSON")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind")
    return parser.parse_args()


def main():
    args = parse_args()
    app = create_app(Path(args.summary))
    app.run(host=args.host, port=args.port, debug=False)


if __name__ == "__main__":
    main()
