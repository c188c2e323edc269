from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from log_formats import LineMatcher, compile_format, detect_format, resolve_format
from route_tree import ReportRow, RouteTree, flatten


@dataclass(frozen=True)
class AnalyzerConfig:
    num_in_top: int = 10
    route_merge_factor: int = 10

    def __post_init__(self):
        if self.num_in_top < 1:
            raise ValueError(f"num_in_top must be positive (got {self.num_in_top})")
        if self.route_merge_factor < 1:
            raise ValueError(f"route_merge_factor must be positive (got {self.route_merge_factor})")


# metric key -> (section title, value of a row, formatted as a duration)
METRICS: Dict[str, tuple] = {
    "calls": ("TOP CALLS", lambda row: row.calls, False),
    "404": ("TOP 404", lambda row: row.errors_404, False),
    "5xx": ("TOP 5xx", lambda row: row.errors_5xx, False),
    "avg_duration": ("TOP AVG DURATION", lambda row: row.avg_duration, True),
    "cost": ("TOP COST", lambda row: row.duration, True),
}


def metric_value(metric: str) -> Callable[[ReportRow], Any]:
    try:
        return METRICS[metric][1]
    except KeyError:
        raise ValueError(f"Unknown metric {metric!r}; expected one of {', '.join(METRICS)}") from None


def new_stats() -> Dict[str, Any]:
    return {
        "tree": RouteTree(),
        "matcher": None,
        "format": None,
        "lines": 0,
        "parsed": 0,
        "parse_errors": 0,
    }


def update_stats(stats: Dict[str, Any], record: Dict[str, Any]) -> None:
    stats["parsed"] += 1
    stats["tree"].add_request(record["path"], record["status"], record["duration"])


def analyze_lines(
    lines: Iterable[str],
    template: str = "",
    candidates: Optional[Mapping[str, str]] = None,
    stats: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Feed raw log lines into a route tree.

    With an empty *template* the format is guessed from the first non-blank
    line and ``FormatUnrecognized`` propagates when nothing matches.
    """
    if stats is None:
        stats = new_stats()

    matcher: Optional[LineMatcher] = stats["matcher"]
    if matcher is None and template:
        matcher = compile_format(resolve_format(template))
        stats["matcher"] = matcher
        stats["format"] = template

    for line in lines:
        stats["lines"] += 1
        line = line.rstrip("\r\n")
        if matcher is None:
            if not line.strip():
                stats["parse_errors"] += 1
                continue
            matcher, stats["format"] = detect_format(candidates, line)
            stats["matcher"] = matcher

        record = matcher.match(line)
        if not record:
            stats["parse_errors"] += 1
            continue
        update_stats(stats, record)

    return stats


def rank_rows(rows: Iterable[ReportRow], metric: str, limit: Optional[int] = None) -> List[ReportRow]:
    ranked = sorted(rows, key=metric_value(metric), reverse=True)
    if limit is not None:
        ranked = ranked[:limit]
    return ranked


def summarize_stats(stats: Dict[str, Any], config: Optional[AnalyzerConfig] = None) -> Dict[str, Any]:
    config = config or AnalyzerConfig()
    tree: RouteTree = stats["tree"]
    rows = flatten(tree, config)

    top = {}
    for metric in METRICS:
        value = metric_value(metric)
        top[metric] = [
            {"rank": rank, "route": row.route, "value": value(row)}
            for rank, row in enumerate(rank_rows(rows, metric, config.num_in_top))
        ]

    return {
        "format": stats["format"],
        "total_lines": stats["lines"],
        "parsed_lines": stats["parsed"],
        "parse_errors": stats["parse_errors"],
        "total_requests": tree.root.calls,
        "routes": len(rows),
        "top": top,
        "rows": [row.to_dict() for row in rows],
    }


def format_value(metric: str, value: Any) -> str:
    if METRICS[metric][2]:
        return f"{value:.3f}s"
    return str(value)


def render_report(summary: Dict[str, Any]) -> str:
    lines = []
    for metric, (title, _, _) in METRICS.items():
        lines.append(f"** {title} **")
        for entry in summary["top"].get(metric, []):
            lines.append(f"{entry['rank']}. {entry['route']} : {format_value(metric, entry['value'])}")
    return "\n".join(lines)
