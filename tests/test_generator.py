import json
from pathlib import Path

from vyx.scanner.generator import generate

GO_SOURCE = """package handler

// @Route(POST /api/users)
// @Auth(roles: ["admin"])
func CreateUser() {}
"""

TS_SOURCE = """
// @Route(GET /api/products)
export async function list() {}
"""

TSX_SOURCE = """// @Page(/dashboard)
export default function Dashboard() {}
"""


def make_dir(root: Path, name: str, filename: str, content: str) -> Path:
    directory = root / name
    directory.mkdir()
    (directory / filename).write_text(content, encoding="utf-8")
    return directory


def test_generate_writes_route_map(tmp_path):
    go_dir = make_dir(tmp_path, "handlers", "handler.go", GO_SOURCE)
    ts_dir = make_dir(tmp_path, "api", "products.ts", TS_SOURCE)
    front = make_dir(tmp_path, "pages", "Dashboard.tsx", TSX_SOURCE)
    output = tmp_path / "out" / "route_map.json"

    errors = generate(str(go_dir), str(ts_dir), str(front), str(output))

    assert errors == []
    document = json.loads(output.read_text(encoding="utf-8"))
    routes = document["routes"]
    assert [(r["method"], r["path"]) for r in routes] == [
        ("POST", "/api/users"),
        ("GET", "/api/products"),
        ("GET", "/dashboard"),
    ]
    assert [r["worker_id"] for r in routes] == ["go:handlers", "node:api", "node:ssr"]
    assert routes[0]["auth_roles"] == ["admin"]
    assert routes[2]["type"] == "page"


def test_source_location_is_not_serialised(tmp_path):
    go_dir = make_dir(tmp_path, "handlers", "handler.go", GO_SOURCE)
    output = tmp_path / "route_map.json"
    assert generate(go_dir, "", "", output) == []
    route = json.loads(output.read_text(encoding="utf-8"))["routes"][0]
    assert "file" not in route
    assert "line" not in route
    assert set(route) == {"path", "method", "worker_id", "auth_roles", "validate", "type"}


def test_errors_are_returned_and_nothing_is_written(tmp_path):
    go_dir = make_dir(tmp_path, "one", "a.go", GO_SOURCE)
    (go_dir / "b.go").write_text(GO_SOURCE, encoding="utf-8")
    output = tmp_path / "route_map.json"

    errors = generate(go_dir, None, None, output)

    assert len(errors) == 1
    assert "duplicate route POST /api/users" in str(errors[0])
    assert not output.exists()


def test_invalid_method_reported(tmp_path):
    go_dir = make_dir(tmp_path, "svc", "svc.go", "// @Route(FETCH /x)\nfunc X() {}\n")
    output = tmp_path / "route_map.json"
    errors = generate(go_dir, "", "", output)
    assert [e.line for e in errors] == [1]
    assert not output.exists()


def test_no_directories_gives_null_routes(tmp_path):
    output = tmp_path / "route_map.json"
    assert generate("", "", "", output) == []
    assert json.loads(output.read_text(encoding="utf-8")) == {"routes": None}


def test_output_is_indented_with_two_spaces(tmp_path):
    go_dir = make_dir(tmp_path, "handlers", "handler.go", GO_SOURCE)
    output = tmp_path / "route_map.json"
    generate(go_dir, "", "", output)
    text = output.read_text(encoding="utf-8")
    assert text.startswith('{\n  "routes": [\n    {\n')
    assert not text.endswith("\n")


def test_html_characters_are_escaped(tmp_path):
    go_dir = make_dir(tmp_path, "handlers", "h.go", "// @Route(GET /a<b)\nfunc H() {}\n")
    output = tmp_path / "route_map.json"
    assert generate(go_dir, "", "", output) == []
    text = output.read_text(encoding="utf-8")
    assert "<" not in text
    assert "\\u003c" in text
    assert json.loads(text)["routes"][0]["path"] == "/a<b"