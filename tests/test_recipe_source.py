import pytest
import requests

from app.config import settings
from app.modules.recipes.source import (
    RecipeSource, RecipeSourceError, BROWSE_OFFSET_RANGE, GROUP_OFFSET_RANGE, RETRY_OFFSET_RANGE
)


class StubResponse:
    def __init__(self, status_code=200, payload=None, bad_json=False):
        self.status_code = status_code
        self._payload = payload if payload is not None else {"results": []}
        self._bad_json = bad_json

    def json(self):
        if self._bad_json:
            raise ValueError("Expecting value")
        return self._payload


class StubSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class RecordingRng:
    """Picks the lowest offset of every range and leaves shuffles alone."""

    def __init__(self):
        self.ranges = []

    def randrange(self, start, stop):
        self.ranges.append((start, stop))
        return start

    def shuffle(self, items):
        return None


def _item(item_id, name="Tacos", **extra):
    return {"id": item_id, "name": name, **extra}


def test_fetch_random_maps_catalog_items():
    session = StubSession(StubResponse(payload={"results": [
        _item(11, "Tacos", thumbnail_url="https://img/t.jpg", total_time_minutes=25, description="Crunchy"),
        _item(12, "Soup", description=""),
        {"id": 13},
    ]}))
    source = RecipeSource(session=session, rng=RecordingRng())

    meals = source.fetch_random(3)

    assert [m.id for m in meals] == ["11", "12"]
    assert meals[0].image_url == "https://img/t.jpg"
    assert meals[0].estimated_minutes == 25
    assert meals[0].description == "Crunchy"
    assert meals[1].description is None
    assert meals[0].to_payload()["estimatedMinutes"] == 25


def test_group_and_browse_draw_from_disjoint_ranges():
    rng = RecordingRng()
    session = StubSession(StubResponse(payload={"results": [_item(1)]}),
                          StubResponse(payload={"results": [_item(2)]}))
    source = RecipeSource(session=session, rng=rng)

    source.fetch_random(5)
    source.browse(5)

    assert rng.ranges == [GROUP_OFFSET_RANGE, BROWSE_OFFSET_RANGE]
    assert session.requests[0]["params"] == {"from": 2000, "size": 5}
    assert session.requests[1]["params"] == {"from": 0, "size": 5}
    assert GROUP_OFFSET_RANGE[0] >= BROWSE_OFFSET_RANGE[1]


def test_empty_page_retries_in_the_low_range():
    rng = RecordingRng()
    session = StubSession(StubResponse(), StubResponse(payload={"results": [_item(7)]}))
    source = RecipeSource(session=session, rng=rng)

    meals = source.fetch_random(4)

    assert [m.id for m in meals] == ["7"]
    assert rng.ranges == [GROUP_OFFSET_RANGE, RETRY_OFFSET_RANGE]


@pytest.mark.parametrize("responses", [
    [StubResponse(status_code=500)],
    [requests.ConnectionError("refused")],
    [StubResponse(bad_json=True)],
    [StubResponse(), StubResponse()],
    [StubResponse(), StubResponse(status_code=429)],
])
def test_failures_fall_back_to_the_static_set(responses):
    source = RecipeSource(session=StubSession(*responses), rng=RecordingRng())

    meals = source.fetch_random(10)

    assert [m.id for m in meals] == ["fallback-1", "fallback-2", "fallback-3"]


def test_fetch_batch_raises_on_http_error():
    source = RecipeSource(session=StubSession(StubResponse(status_code=403)), rng=RecordingRng())

    with pytest.raises(RecipeSourceError, match="HTTP 403"):
        source.fetch_batch(0, 5)


def test_requests_carry_catalog_headers(monkeypatch):
    monkeypatch.setattr(settings, "recipe_api_key", "key-123")
    session = StubSession(StubResponse(payload={"results": [_item(1)]}))

    RecipeSource(session=session, rng=RecordingRng()).fetch_random(1)

    sent = session.requests[0]
    assert sent["url"] == settings.recipe_api_url
    assert sent["headers"]["x-rapidapi-key"] == "key-123"
    assert sent["headers"]["x-rapidapi-host"] == settings.recipe_api_host
    assert sent["timeout"] == settings.recipe_api_timeout_sec
