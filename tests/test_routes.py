
from fastapi.testclient import TestClient
from api.main import app
import api.routes as routes


def test_status_root():
    client = TestClient(app)
    r = client.get("/")
    assert r.status_code == 200
    assert r.text == "Servidor de reconocimiento facial funcionando"
    assert r.headers["content-type"].startswith("text/plain")


def test_status_root_ignores_headers_and_body():
    client = TestClient(app)
    r = client.request(
        "GET", "/",
        headers={"Content-Type": "application/json", "X-Anything": "1"},
        content=b'{"hello": "world"}',
    )
    assert r.status_code == 200
    assert r.text == routes.settings.STATUS_MESSAGE


def test_status_root_cors():
    client = TestClient(app)
    r = client.get("/", headers={"Origin": "http://localhost:3000"})
    assert r.status_code == 200
    assert r.headers.get("access-control-allow-origin") == "*"


def test_no_other_routes():
    client = TestClient(app)
    assert client.get("/metrics").status_code == 404
    assert client.post("/").status_code == 405
