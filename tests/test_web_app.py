from fastapi.testclient import TestClient

from tidal_cli.web import build_callback_app


def _client():
    received = []
    return TestClient(build_callback_app(received.append)), received


def test_callback_with_code():
    client, received = _client()
    response = client.get("/callback", params={"code": "abc", "state": "s1"})
    assert response.status_code == 200
    assert "Authorization received." in response.text
    assert received == [{"code": "abc", "state": "s1"}]


def test_callback_with_error_is_escaped():
    client, received = _client()
    response = client.get("/callback", params={"error": "<access_denied>"})
    assert response.status_code == 400
    assert "&lt;access_denied&gt;" in response.text
    assert received == [{"error": "<access_denied>"}]


def test_callback_without_code():
    client, received = _client()
    response = client.get("/callback")
    assert response.status_code == 400
    assert "Missing authorization code." in response.text
    assert received == []
