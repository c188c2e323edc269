import argparse
import gzip
import json
import sys
import zlib
from pathlib import Path
from typing import Iterator, List, Optional

from analysis_core import AnalyzerConfig, analyze_lines, render_report, summarize_stats
from log_formats import FORMATS, FormatError, FormatUnrecognized


def iter_lines(path: str) -> Iterator[str]:
    """Yield lines from *path*; ``-`` reads stdin and ``.gz`` files are decompressed."""
    if path == "-":
        yield from sys.stdin
    elif path.endswith(".gz"):
        with gzip.open(path, "rt", encoding="utf-8", errors="replace") as handle:
            yield from handle
    else:
        with open(path, "r", encoding="utf-8", errors="replace") as handle:
            yield from handle


def build_plot(summary: dict, output_path: Path):
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    entries = list(reversed(summary["top"]["calls"]))
    routes = [entry["route"] for entry in entries]
    calls = [entry["value"] for entry in entries]

    fig, ax = plt.subplots(figsize=(10, max(3, 0.4 * len(routes) + 1)))
    ax.barh(routes, calls, color="#4f81bd")
    ax.set_title("Top routes by calls")
    ax.set_xlabel("Calls")

    fig.tight_layout()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=150)
    plt.close(fig)


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer (got {value})")
    return number


def parse_args(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="Top routes, errors and latency from a web access log")
    parser.add_argument("logfile", help="Access log to analyze (.gz supported, - for stdin).")
    parser.add_argument("-t", "--top", type=positive_int, default=10, help="Number of items in top.")
    parser.add_argument("-m", "--merge-factor", type=positive_int, default=10, help="Merge factor for route computation.")
    parser.add_argument(
        "-f",
        "--format",
        default="",
        help=f"Log format name ({', '.join(sorted(FORMATS))}) or template; guessed when omitted.",
    )
    parser.add_argument("--output", help="Optional path to write the JSON summary.")
    parser.add_argument("--plot", help="Optional path to write a top calls plot (PNG).")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    config = AnalyzerConfig(num_in_top=args.top, route_merge_factor=args.merge_factor)

    try:
        stats = analyze_lines(iter_lines(args.logfile), template=args.format)
    except (FormatUnrecognized, FormatError) as exc:
        raise SystemExit(str(exc))
    except (gzip.BadGzipFile, EOFError, zlib.error) as exc:
        raise SystemExit(f"error decompressing file= {exc}")
    except OSError as exc:
        raise SystemExit(f"error opening file= {exc}")

    if not args.format and stats["format"]:
        print(f"Guessed format : {stats['format']}")

    summary = summarize_stats(stats, config)
    print(render_report(summary))
    if summary["parse_errors"]:
        print(f"Skipped {summary['parse_errors']} unparseable lines")

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as handle:
            json.dump(summary, handle, indent=2)
        print(f"- JSON summary: {output_path}")

    if args.plot:
        build_plot(summary, Path(args.plot))
        print(f"- Plot: {Path(args.plot)}")


if __name__ == "__main__":
    main()
