# tests/test_dashboard.py

import pytest
import catalog.dashboard as dashboard


class FakeResponse:
  def __init__(self, status_code, payload=None, text=""):
    self.status_code = status_code
    self.payload = payload
    self.text = text

  def json(self):
    if self.payload is None:
      raise ValueError("no json")
    return self.payload


def test_build_list_params_drops_empty_filters():
  assert dashboard.build_list_params(page=2, limit=10) == {"page": 2, "limit": 10}
  assert dashboard.build_list_params(1, 5, name="  run ", category="shoes", min_price=10.0, max_price=0.0) == {
    "page": 1, "limit": 5, "name": "run", "category": "shoes", "minPrice": 10.0,
  }


def test_call_api_sends_bearer_token(monkeypatch):
  calls = list()

  def fake_request(method, url, params=None, headers=None, timeout=None):
    calls.append((method, url, params, headers))
    return FakeResponse(200, {"data": [], "total": 0})

  monkeypatch.setattr(dashboard.requests, "request", fake_request)

  assert dashboard.call_api("GET", "/products", "abc", params={"page": 1}) == {"data": [], "total": 0}
  assert calls == [("GET", f"{dashboard.API_URL}/products", {"page": 1}, {"Authorization": "Bearer abc"})]


def test_call_api_raises_api_error(monkeypatch):
  monkeypatch.setattr(dashboard.requests, "request", lambda *a, **k: FakeResponse(401, {"detail": "Authorization header is missing"}))

  with pytest.raises(dashboard.ApiError) as exc_info:
    dashboard.call_api("GET", "/products", "")
  assert exc_info.value.status_code == 401
  assert exc_info.value.detail == "Authorization header is missing"


def test_call_api_no_content(monkeypatch):
  monkeypatch.setattr(dashboard.requests, "request", lambda *a, **k: FakeResponse(204))
  assert dashboard.call_api("DELETE", "/products/1", "abc") is None


def test_products_frame_columns():
  frame = dashboard.products_frame([{"id": 1, "name": "Runner", "price": 20.0, "created_at": "2024-01-01"}])
  assert list(frame.columns) == ["id", "name", "price"]
  assert list(dashboard.products_frame([]).columns) == dashboard.TABLE_COLUMNS
