import pytest

from analysis_core import AnalyzerConfig
from route_tree import WILDCARD, ReportRow, RouteTree, flatten, is_high_cardinality, split_path


@pytest.mark.parametrize(
    "segment,expected",
    [
        ("42", True),
        ("-7", True),
        ("+3", True),
        ("blouses-femme-ete-soldes", True),
        ("blouses-femme-ete", False),
        ("4a", False),
        ("shop", False),
        ("", False),
    ],
)
def test_is_high_cardinality(segment, expected):
    assert is_high_cardinality(segment) is expected


def test_split_path():
    assert split_path("/shop/42") == ["shop", "42"]
    assert split_path("") == []
    assert split_path("/") == [""]


def test_counters_are_conserved():
    tree = RouteTree()
    statuses = [200, 404, 500, 502, 503, 504, 301, 404, 200, 501]
    for index, status in enumerate(statuses):
        tree.add_request(f"/page/{index % 3}/detail", status, 0.5)

    root = tree.root
    assert root.calls == len(statuses)
    assert root.errors_404 == 2
    assert root.errors_5xx == 4
    assert root.errors_404 + root.errors_5xx <= root.calls
    assert root.duration == pytest.approx(5.0)


def test_wildcard_child_created_with_first_child():
    tree = RouteTree()
    tree.add_request("/about", 200)
    assert set(tree.root.children) == {WILDCARD, "about"}
    assert tree.find("/about").is_leaf


def test_double_counting_when_not_collapsed():
    tree = RouteTree()
    tree.add_request("/a/b", 404, 0.25)
    tree.add_request("/a/b", 200, 0.75)

    literal = tree.find("/a/b")
    for path in ("/xxx/b", "/a/xxx", "/xxx/xxx"):
        node = tree.find(path)
        assert (node.calls, node.errors_404, node.errors_5xx, node.duration) == (
            literal.calls,
            literal.errors_404,
            literal.errors_5xx,
            literal.duration,
        )
    assert literal.calls == 2
    assert literal.errors_404 == 1


def test_numeric_segment_collapses_node():
    tree = RouteTree()
    tree.add_request("/users/42", 200)
    tree.add_request("/users/alice", 200)

    users = tree.find("/users")
    assert users.collapsed
    assert set(users.children) == {WILDCARD}
    assert tree.find("/users/xxx").calls == 2


def test_collapse_is_sticky():
    tree = RouteTree()
    tree.add_request("/users/alice", 200)
    tree.add_request("/users/42", 200)
    tree.add_request("/users/alice", 200)
    tree.add_request("/users/bob", 200)

    users = tree.find("/users")
    assert users.collapsed
    assert tree.find("/users/alice").calls == 1
    assert "bob" not in users.children
    assert tree.find("/users/xxx").calls == 4


def test_slug_segment_collapses_node():
    tree = RouteTree()
    tree.add_request("/produit/robe-en-lin-bleue", 200)
    assert tree.find("/produit").collapsed

    tree.add_request("/categorie/blouses-femme", 200)
    assert not tree.find("/categorie").collapsed


def test_empty_paths_count_only_at_root():
    tree = RouteTree()
    tree.add_request("", 200)
    tree.add_request("/", 500)
    assert tree.root.calls == 2
    assert tree.root.errors_5xx == 1
    assert tree.root.is_leaf


def test_empty_segment_ends_walk():
    tree = RouteTree()
    tree.add_request("/a//b", 200)
    tree.add_request("/a/", 200)
    assert tree.find("/a").calls == 2
    assert tree.find("/a").is_leaf


def test_literal_wildcard_segment_is_counted_once():
    tree = RouteTree()
    tree.add_request("/xxx", 200)
    assert set(tree.root.children) == {WILDCARD}
    assert tree.find("/xxx").calls == 1


def test_nodes_are_stored_in_arena():
    tree = RouteTree()
    tree.add_request("/a/b", 200)
    handle = tree.root.children["a"]
    assert tree.node(handle) is tree.find("/a")
    assert len(tree.nodes) == 1 + 2 + 2 * 2


def test_flatten_empty_tree():
    assert flatten(RouteTree(), AnalyzerConfig()) == []


def test_flatten_numeric_ids():
    tree = RouteTree()
    tree.add_request("/shop/42", 200)
    tree.add_request("/shop/17", 200)
    assert flatten(tree, AnalyzerConfig()) == [ReportRow("/shop/xxx", 2, 0, 0, 0.0)]


def test_flatten_single_request():
    tree = RouteTree()
    tree.add_request("/missing", 404)
    assert flatten(tree, AnalyzerConfig()) == [ReportRow("/missing", 1, 1, 0, 0.0)]


def test_flatten_collapsed_root_reports_wildcard():
    tree = RouteTree()
    tree.add_request("/42", 200)
    tree.add_request("/43", 200)
    assert flatten(tree, AnalyzerConfig()) == [ReportRow("/xxx", 2, 0, 0, 0.0)]


def test_flatten_expands_low_cardinality_children():
    tree = RouteTree()
    for _ in range(50):
        tree.add_request("/api/users", 200, 0.1)
        tree.add_request("/api/orders", 500, 0.2)

    rows = {row.route: row for row in flatten(tree, AnalyzerConfig())}
    assert set(rows) == {"/api/users", "/api/orders"}
    assert rows["/api/users"].calls == 50
    assert rows["/api/orders"].errors_5xx == 50
    assert sum(row.calls for row in rows.values()) == tree.root.calls


def test_flatten_merges_high_cardinality_children():
    tree = RouteTree()
    for index in range(20):
        tree.add_request(f"/api/v{index}", 200)

    assert not tree.find("/api").collapsed
    assert flatten(tree, AnalyzerConfig()) == [ReportRow("/api/xxx", 20, 0, 0, 0.0)]


def test_merge_factor_controls_report_collapse():
    tree = RouteTree()
    for _ in range(50):
        tree.add_request("/api/users", 200)
        tree.add_request("/api/orders", 200)

    rows = flatten(tree, AnalyzerConfig(route_merge_factor=100))
    assert [row.route for row in rows] == ["/api/xxx"]
    assert rows[0].calls == 100


def test_flatten_coverage_across_depths():
    tree = RouteTree()
    for _ in range(40):
        tree.add_request("/home", 200)
        tree.add_request("/blog/posts", 200)
        tree.add_request("/blog/tags", 404)

    rows = flatten(tree, AnalyzerConfig())
    assert sorted(row.route for row in rows) == ["/blog/posts", "/blog/tags", "/home"]
    assert sum(row.calls for row in rows) == tree.root.calls == 120


def test_rows_are_snapshots():
    tree = RouteTree()
    tree.add_request("/missing", 404)
    rows = flatten(tree, AnalyzerConfig())
    tree.add_request("/missing", 404)
    assert rows[0].calls == 1
    with pytest.raises(AttributeError):
        rows[0].calls = 5


def test_avg_duration():
    assert ReportRow("/a", 4, 0, 0, 2.0).avg_duration == 0.5
    assert ReportRow("/a", 0, 0, 0, 0.0).avg_duration == 0.0


def test_deep_numeric_path():
    tree = RouteTree()
    tree.add_request("/" + "/".join(str(index) for index in range(1500)), 200, 0.1)

    assert tree.root.calls == 1
    rows = flatten(tree, AnalyzerConfig())
    assert len(rows) == 1
    assert rows[0].route == "/" + "/".join([WILDCARD] * 1500)
    assert rows[0].calls == 1
    assert rows[0].duration == pytest.approx(0.1)


def test_deep_literal_path_flattens_in_order():
    tree = RouteTree()
    for _ in range(30):
        tree.add_request("/docs/guide/install", 200)
        tree.add_request("/docs/guide/usage", 200)

    assert [row.route for row in flatten(tree, AnalyzerConfig())] == [
        "/docs/guide/install",
        "/docs/guide/usage",
    ]
