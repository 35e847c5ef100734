"""
Tests for the medication catalog download.
"""
import pytest
import requests

import medications


class FakeResponse:
    def __init__(self, text="", status=200, content_type="application/json", payload=None):
        self.text = text
        self.status_code = status
        self.headers = {"Content-Type": content_type}
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@pytest.fixture
def respond(monkeypatch):
    calls = []

    def _respond(response=None, error=None):
        def fake_get(url, timeout=None):
            calls.append((url, timeout))
            if error:
                raise error
            return response
        monkeypatch.setattr(medications.requests, "get", fake_get)
        return calls
    return _respond


def test_json_list_of_names(respond):
    calls = respond(FakeResponse(text='["x"]', payload=["paracetamol", " Ibuprofeno ", "paracetamol", ""]))
    assert medications.fetch_medications("http://meds.test/a.json", timeout=3) == ["IBUPROFENO", "PARACETAMOL"]
    assert calls == [("http://meds.test/a.json", 3)]


def test_json_objects(respond):
    respond(FakeResponse(payload=[{"name": "amoxicilina"}, {"nombre": "naproxeno"}, {"other": 1}]))
    assert medications.fetch_medications("http://meds.test") == ["AMOXICILINA", "NAPROXENO"]


def test_json_wrapped_list(respond):
    respond(FakeResponse(payload={"medications": ["loratadina"]}))
    assert medications.fetch_medications("http://meds.test") == ["LORATADINA"]


def test_plain_text_lines(respond):
    respond(FakeResponse(text="omeprazol\n\nmetformina\n", content_type="text/plain"))
    assert medications.fetch_medications("http://meds.test/list.txt") == ["METFORMINA", "OMEPRAZOL"]


def test_network_error_gives_empty_list(respond):
    respond(error=requests.ConnectionError("down"))
    assert medications.fetch_medications("http://meds.test") == []


def test_http_error_gives_empty_list(respond):
    respond(FakeResponse(status=500))
    assert medications.fetch_medications("http://meds.test") == []


def test_malformed_payload_gives_empty_list(respond):
    respond(FakeResponse(text="{", payload=None))
    assert medications.fetch_medications("http://meds.test") == []
    respond(FakeResponse(payload={"medications": "not a list"}))
    assert medications.fetch_medications("http://meds.test") == []


def test_no_url_no_request(respond):
    calls = respond(FakeResponse(payload=["x"]))
    assert medications.fetch_medications("") == []
    assert calls == []
