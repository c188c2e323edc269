import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

WILDCARD = "xxx"
ROOT = 0
SERVER_ERRORS = frozenset((500, 502, 503, 504))

_INTEGER = re.compile(r"[+-]?[0-9]+")


def is_high_cardinality(segment: str) -> bool:
    """Slugs (3+ hyphens) and numeric ids are folded into the wildcard."""
    return segment.count("-") >= 3 or _INTEGER.fullmatch(segment) is not None


def split_path(path: str) -> List[str]:
    segments = path.split("/")
    if segments[0] == "":
        segments = segments[1:]
    return segments


@dataclass
class RouteNode:
    label: str
    collapsed: bool = False
    children: Dict[str, int] = field(default_factory=dict)
    calls: int = 0
    errors_404: int = 0
    errors_5xx: int = 0
    duration: float = 0.0

    @property
    def is_leaf(self) -> bool:
        return not self.children


@dataclass(frozen=True)
class ReportRow:
    route: str
    calls: int
    errors_404: int
    errors_5xx: int
    duration: float

    @property
    def avg_duration(self) -> float:
        return self.duration / self.calls if self.calls else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "route": self.route,
            "calls": self.calls,
            "errors_404": self.errors_404,
            "errors_5xx": self.errors_5xx,
            "duration": self.duration,
            "avg_duration": self.avg_duration,
        }


class RouteTree:
    """Per-segment request counters, stored as an arena of RouteNodes.

    Every request is recorded twice below a node: once under the wildcard
    child and once under its literal segment. The literal branch stops
    receiving traffic as soon as the node sees a slug or a numeric segment,
    which keeps memory bounded on ID-heavy routes.
    """

    def __init__(self):
        self.nodes: List[RouteNode] = [RouteNode(label="")]

    @property
    def root(self) -> RouteNode:
        return self.nodes[ROOT]

    def node(self, handle: int) -> RouteNode:
        return self.nodes[handle]

    def child(self, handle: int, label: str) -> int:
        children = self.nodes[handle].children
        if label not in children:
            children[label] = len(self.nodes)
            self.nodes.append(RouteNode(label=label))
        return children[label]

    def add_request(self, path: str, status: int, duration: float = 0.0) -> None:
        self._add(ROOT, split_path(path), 0, status, duration)

    def _add(self, handle: int, segments: List[str], depth: int, status: int, duration: float) -> None:
        pending = [(handle, depth)]
        while pending:
            handle, depth = pending.pop()
            node = self.nodes[handle]
            node.calls += 1
            if status == 404:
                node.errors_404 += 1
            elif status in SERVER_ERRORS:
                node.errors_5xx += 1
            node.duration += duration

            if depth >= len(segments) or segments[depth] == "":
                continue

            segment = segments[depth]
            if is_high_cardinality(segment):
                node.collapsed = True

            pending.append((self.child(handle, WILDCARD), depth + 1))
            if not node.collapsed and segment != WILDCARD:
                pending.append((self.child(handle, segment), depth + 1))

    def find(self, path: str) -> RouteNode:
        """Return the node for an exact path, e.g. ``/shop/xxx``."""
        handle = ROOT
        for segment in split_path(path):
            if segment == "":
                break
            handle = self.nodes[handle].children[segment]
        return self.nodes[handle]


def flatten(tree: RouteTree, config) -> List[ReportRow]:
    """Turn *tree* into one row per reportable route.

    A node with more children than ``calls // route_merge_factor`` is reported
    through its wildcard child only. First-level segments are always kept
    literal and the root itself is never a row, so the merge-factor cap does
    not apply at the root: every distinct first segment gets its own rows.
    """
    root = tree.root
    if root.is_leaf:
        return []

    rows = []
    for label, handle in _expanded_children(root):
        for route, node in _flatten_node(tree, handle, config.route_merge_factor):
            rows.append(
                ReportRow(
                    route=f"{root.label}/{route}",
                    calls=node.calls,
                    errors_404=node.errors_404,
                    errors_5xx=node.errors_5xx,
                    duration=node.duration,
                )
            )
    return rows


def _expanded_children(node: RouteNode) -> List[Tuple[str, int]]:
    only_child = len(node.children) == 1
    return [(label, handle) for label, handle in node.children.items() if label != WILDCARD or only_child]


def _flatten_node(tree: RouteTree, handle: int, merge_factor: int) -> List[Tuple[str, RouteNode]]:
    flat = []
    pending = [(handle, "")]
    while pending:
        handle, prefix = pending.pop()
        node = tree.nodes[handle]
        route = prefix + node.label
        if node.is_leaf:
            flat.append((route, node))
            continue

        if len(node.children) > node.calls // merge_factor:
            selected = [(WILDCARD, node.children[WILDCARD])]
        else:
            selected = _expanded_children(node)

        for _, child in reversed(selected):
            pending.append((child, route + "/"))
    return flat
