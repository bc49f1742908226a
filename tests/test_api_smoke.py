import io

from fastapi.testclient import TestClient
from pypdf import PdfReader

from main import app

client = TestClient(app)

HEADERS = {
    "Authorization": "Bearer test-token",
    "X-App-ID": "pytest",
}

PAYLOAD = {
    "records": [
        {"id": 1, "title": "Foo", "author": [{"name": "A"}], "tags": [{"label": "x"}, {"label": "y"}]},
        None,
        {"id": 2, "title": "Bar", "author": [], "tags": []},
    ],
    "options": {"only": ["title"], "include": ["author", "tags"]},
    "title": "Books",
}


def test_table_json():
    r = client.post("/api/reports/table", json=PAYLOAD, headers=HEADERS)
    assert r.status_code == 200, f"Unexpected {r.status_code}: {r.text}"
    data = r.json()
    assert data["columns"] == ["title", "author.name", "tags.label"]
    assert data["count"] == 3
    assert data["rows"][0] == {"title": "Foo", "author.name": "A", "tags.label": "x"}
    assert data["rows"][2] == {"title": "Bar", "author.name": None, "tags.label": None}


def test_table_json_nested_options_and_except_alias():
    payload = {
        "records": [{"id": 1, "title": "Foo", "secret": "s", "author": {"name": "A", "email": "a@x"}}],
        "options": {"except": "secret", "include": {"author": {"only": "name"}}},
    }
    r = client.post("/api/reports/table", json=payload, headers=HEADERS)
    assert r.status_code == 200, r.text
    assert r.json()["columns"] == ["id", "title", "author.name"]


def test_table_csv():
    r = client.post("/api/reports/table.csv", json=PAYLOAD, headers=HEADERS)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert r.text.splitlines()[0] == "title,author.name,tags.label"


def test_table_pdf_is_served_inline():
    r = client.post("/api/reports/table.pdf", json=PAYLOAD, headers=HEADERS)
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/pdf"
    assert r.headers["content-disposition"].startswith("inline")
    text = "\n".join(p.extract_text() or "" for p in PdfReader(io.BytesIO(r.content)).pages)
    assert "Books" in text
    assert "Foo" in text


def test_render_registered_template():
    payload = dict(PAYLOAD, assigns={})
    r = client.post("/api/reports/render/table", json=payload, headers=HEADERS)
    assert r.status_code == 200
    assert r.content.startswith(b"%PDF")
    assert 'filename="table.pdf"' in r.headers["content-disposition"]


def test_unknown_template_is_404():
    r = client.post("/api/reports/render/nope", json=PAYLOAD, headers=HEADERS)
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "TEMPLATE_NOT_FOUND"


def test_invalid_include_is_400():
    payload = dict(PAYLOAD, options={"include": 5})
    r = client.post("/api/reports/table", json=payload, headers=HEADERS)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_PROJECTION"


def test_table_json_mixed_record_shapes():
    payload = {
        "records": [{"title": "A", "author": {"name": "x"}}, {"title": "B"}, {"title": "C", "author": None}],
        "options": {"include": ["author"]},
    }
    r = client.post("/api/reports/table", json=payload, headers=HEADERS)
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["columns"] == ["title", "author.name"]
    assert [row["author.name"] for row in data["rows"]] == ["x", None, None]


def test_missing_association_is_400():
    payload = {"records": [{"id": 1, "author": "A"}], "options": {"include": "author"}}
    r = client.post("/api/reports/table", json=payload, headers=HEADERS)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "MISSING_ASSOCIATION"


def test_unknown_method_is_400():
    payload = {"records": [{"id": 1}], "options": {"methods": "total"}}
    r = client.post("/api/reports/table", json=payload, headers=HEADERS)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "DERIVED_COMPUTATION_FAILED"


def test_missing_authorization():
    r = client.post("/api/reports/table", json=PAYLOAD, headers={"X-App-ID": "pytest"})
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "UNAUTHORIZED"


def test_missing_app_id():
    r = client.post("/api/reports/table", json=PAYLOAD, headers={"Authorization": "Bearer t"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "BAD_REQUEST"


def test_request_id_echoed():
    r = client.get("/healthz", headers={"X-Request-ID": "rid-1"})
    assert r.status_code == 200
    assert r.headers["X-Request-ID"] == "rid-1"
