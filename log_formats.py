import re
from typing import Any, Dict, Mapping, Optional, Tuple

FORMATS = {
    "combined": '$remote_addr - $remote_user [$time_local] "$request" $status $body_bytes_sent "$http_referer" "$http_user_agent"',
    "combined_duration": '$remote_addr - $remote_user [$time_local] "$request" $status $body_bytes_sent "$http_referer" "$http_user_agent".* $duration_seconds',
}

FIELD_PATTERNS = {
    "$remote_addr": r"(?P<remote_addr>[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3})",
    "$remote_user": r"[A-Za-z0-9-]+",
    "$time_local": r"[A-Za-z0-9 :/+-]+",
    "$request": r"(?P<verb>[A-Z]+) (?P<url>[^\?]+)(\?.*)? HTTP/[0-9.]+",
    "$status": r"(?P<status>[0-9]+)",
    "$body_bytes_sent": r"(?P<bytes>[0-9]+)",
    "$http_referer": r'[^"]+',
    "$http_user_agent": r'[^"]+',
    "$duration_seconds": r"(?P<duration>[0-9.]+)",
}

REQUIRED_GROUPS = ("url", "status")


class FormatError(ValueError):
    """Raised when a template cannot be turned into a usable line matcher."""


class FormatUnrecognized(Exception):
    def __init__(self, sample_line: str):
        super().__init__("Unable to guess log format - please specify")
        self.sample_line = sample_line


class LineMatcher:
    """Compiled line template extracting path, status and duration."""

    def __init__(self, template: str, regex: "re.Pattern[str]"):
        self.template = template
        self.regex = regex
        self.has_duration = "duration" in regex.groupindex

    def __repr__(self) -> str:
        return f"LineMatcher({self.template!r})"

    def matches(self, line: str) -> bool:
        return self.regex.search(line) is not None

    def match(self, line: str) -> Optional[Dict[str, Any]]:
        found = self.regex.search(line)
        if not found:
            return None

        try:
            status = int(found.group("status"))
        except ValueError:
            return None

        duration = 0.0
        if self.has_duration:
            try:
                duration = float(found.group("duration"))
            except (TypeError, ValueError):
                duration = 0.0

        return {
            "path": found.group("url"),
            "status": status,
            "duration": duration,
            "verb": found.groupdict().get("verb"),
        }

    __call__ = match


def compile_format(template: str) -> LineMatcher:
    pattern = template.replace("[", r"\[").replace("]", r"\]")
    # longest first: a placeholder may be a prefix of another one
    for placeholder in sorted(FIELD_PATTERNS, key=len, reverse=True):
        pattern = pattern.replace(placeholder, FIELD_PATTERNS[placeholder])

    try:
        regex = re.compile(pattern)
    except re.error as exc:
        raise FormatError(f"Invalid log format {template!r}: {exc}") from exc

    missing = [name for name in REQUIRED_GROUPS if name not in regex.groupindex]
    if missing:
        raise FormatError(f"Log format {template!r} has no {', '.join(missing)} field")
    return LineMatcher(template, regex)


def resolve_format(name_or_template: str) -> str:
    """Map a registry name to its template; anything else is a literal template."""
    return FORMATS.get(name_or_template, name_or_template)


def detect_format(candidates: Optional[Mapping[str, str]], sample_line: str) -> Tuple[LineMatcher, str]:
    """Pick the longest candidate template matching *sample_line*.

    Equal-length templates are ranked by name so the choice does not depend
    on mapping order.
    """
    if candidates is None:
        candidates = FORMATS

    best = None
    for name in sorted(candidates):
        template = candidates[name]
        if best is not None and len(template) <= len(best[0].template):
            continue
        matcher = compile_format(template)
        if matcher.matches(sample_line):
            best = (matcher, name)

    if best is None:
        raise FormatUnrecognized(sample_line)
    return best
