from vyx.scanner.ts_parser import parse_ts_files

PRODUCTS_SRC = """
// @Route(GET /api/products/:id)
// @Validate( zod )
// @Auth(roles: ["user", "guest"])
export async function getProduct(id: string) {}

// @Page(/dashboard)
// @Auth(roles: ["user"])
export default function DashboardPage() {}
"""


def _write(directory, name, content):
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_parse_ts_file(tmp_path):
    _write(tmp_path, "products.ts", PRODUCTS_SRC)

    routes, errs = parse_ts_files(tmp_path, "node:products")
    assert errs == []
    assert len(routes) == 2

    r0 = routes[0]
    assert r0.method == "GET"
    assert r0.path == "/api/products/:id"
    assert r0.type == "api"
    assert len(r0.auth_roles) == 2
    assert r0.auth_roles == ["user", "guest"]
    assert r0.validate == "zod"

    r1 = routes[1]
    assert r1.method == "GET"
    assert r1.path == "/dashboard"
    assert r1.type == "page"
    assert r1.auth_roles == ["user"]
    assert r1.worker_id == "node:products"


def test_line_numbers_point_at_annotation(tmp_path):
    _write(tmp_path, "products.ts", PRODUCTS_SRC)
    routes, _ = parse_ts_files(tmp_path, "node:products")
    assert [r.line for r in routes] == [2, 7]


def test_tsx_files_included_and_other_files_ignored(tmp_path):
    _write(tmp_path, "page.tsx", "// @Page(/home)\nexport default function Home() {}\n")
    _write(tmp_path, "script.js", "// @Route(GET /api/js)\nfunction f() {}\n")
    routes, errs = parse_ts_files(tmp_path, "node:web")
    assert errs == []
    assert [r.path for r in routes] == ["/home"]
    assert routes[0].type == "page"


def test_route_takes_precedence_over_page_in_one_block(tmp_path):
    _write(tmp_path, "mixed.ts", "// @Page(/p)\n// @Route(post /api/p)\nexport function p() {}\n")
    routes, _ = parse_ts_files(tmp_path, "node:api")
    assert len(routes) == 1
    assert routes[0].method == "POST"
    assert routes[0].path == "/api/p"
    assert routes[0].type == "api"
    assert routes[0].line == 2


def test_page_at_end_of_file(tmp_path):
    _write(tmp_path, "end.ts", "export const x = 1\n// @Page( /settings )")
    routes, errs = parse_ts_files(tmp_path, "node:api")
    assert errs == []
    assert routes[0].path == "/settings"
    assert routes[0].method == "GET"


def test_validate_without_route_is_dropped(tmp_path):
    _write(tmp_path, "v.ts", "// @Validate(zod)\nconst a = 1\n// @Route(GET /x)\nfunction x() {}\n")
    routes, _ = parse_ts_files(tmp_path, "node:api")
    assert len(routes) == 1
    assert routes[0].validate == ""
    assert routes[0].path == "/x"


def test_files_walked_in_lexical_order(tmp_path):
    _write(tmp_path, "b.ts", "// @Route(GET /b)\nf()\n")
    _write(tmp_path, "a.ts", "// @Route(GET /a)\nf()\n")
    routes, _ = parse_ts_files(tmp_path, "node:api")
    assert [r.path for r in routes] == ["/a", "/b"]


def test_missing_directory_yields_nothing(tmp_path):
    routes, errs = parse_ts_files(tmp_path / "absent", "node:api")
    assert routes == []
    assert errs == []