"""
Shared fixtures: an in-memory transport serving a small AF tree.

Tree (server S1, database DB1):

    Area
    ├── PadB
    │   ├── B-01    template Well   oil 100, liquid 150, water cut 33.3
    │   ├── B-02    template Well   oil 0 (shut in)
    │   └── Meter   template Meter
    └── PadC
        └── C-01    template well   oil 200, no ESP_Frequency attribute
"""

import threading
from typing import Any, Dict, Optional

import pytest

from piaf.errors import TransportError, TransportErrorKind
from piaf.transport import Transport, build_url

HOST = "af.example.com"
BASE_URL = f"https://{HOST}/piwebapi"
TIMESTAMP = "2024-05-01T12:00:00.1234567Z"


class FakeTransport(Transport):
    """Serves canned JSON by full URL; unknown URLs answer HTTP 404."""

    def __init__(self, routes: Optional[Dict[str, Any]] = None,
                 probes: Optional[Dict[str, Any]] = None):
        self.routes = dict(routes or {})
        self.probes = dict(probes or {})
        self.requests = []
        self.probed = []
        self.closed = False
        self._lock = threading.Lock()

    def get(self, base_url, path, cancel=None):
        if cancel is not None:
            cancel.raise_if_cancelled()
        url = build_url(base_url, path)
        with self._lock:
            self.requests.append(url)
        if url not in self.routes:
            raise TransportError(TransportErrorKind.HTTP_ERROR, url, "not found", status=404)
        response = self.routes[url]
        if isinstance(response, Exception):
            raise response
        return response

    def probe(self, url, timeout, cancel=None):
        if cancel is not None:
            cancel.raise_if_cancelled()
        self.probed.append(url)
        response = self.probes.get(url)
        if response is None:
            raise TransportError(TransportErrorKind.CONNECTION_REFUSED, url)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        self.closed = True


def item(name: str, web_id: str, template: Optional[str] = None, path: str = "",
         has_children: bool = False) -> Dict[str, Any]:
    data = {"Name": name, "WebId": web_id, "Path": path, "HasChildren": has_children,
            "Links": {"Self": f"{BASE_URL}/elements/{web_id}"}}
    if template is not None:
        data["TemplateName"] = template
    return data


def attribute_item(name: str, web_id: str) -> Dict[str, Any]:
    return {"Name": name, "WebId": web_id,
            "Links": {"Value": f"{BASE_URL}/streams/{web_id}/value"}}


def value_payload(value: Any, good: bool = True, timestamp: str = TIMESTAMP) -> Dict[str, Any]:
    return {"Value": value, "Timestamp": timestamp, "Good": good,
            "Questionable": False, "Substituted": False}


def add_well(routes: Dict[str, Any], web_id: str, values: Dict[str, Any]) -> None:
    """Declare one attribute per entry in ``values`` and serve its value."""
    attributes = []
    for index, (name, value) in enumerate(values.items()):
        attr_id = f"{web_id}-A{index}"
        attributes.append(attribute_item(name, attr_id))
        routes[f"{BASE_URL}/streams/{attr_id}/value"] = (
            value if isinstance(value, Exception) else value_payload(value)
        )
    routes[f"{BASE_URL}/elements/{web_id}/attributes"] = {"Items": attributes}


def build_af_routes() -> Dict[str, Any]:
    routes: Dict[str, Any] = {
        f"{BASE_URL}/assetservers": {"Items": [item("S1", "S1")]},
        f"{BASE_URL}/assetservers/S1/assetdatabases": {"Items": [item("DB1", "DB1")]},
        f"{BASE_URL}/assetdatabases/DB1/elements": {
            "Items": [item("Area", "AREA", path="\\\\S1\\DB1\\Area", has_children=True)]
        },
        f"{BASE_URL}/elements/AREA/elements": {"Items": [
            item("PadB", "PADB", template="Wellpad", path="\\\\S1\\DB1\\Area\\PadB", has_children=True),
            item("PadC", "PADC", template="Wellpad", path="\\\\S1\\DB1\\Area\\PadC", has_children=True),
        ]},
        f"{BASE_URL}/elements/PADB/elements": {"Items": [
            item("B-01", "B01", template="Well"),
            item("B-02", "B02", template="Well"),
            item("Meter", "METER", template="Meter"),
        ]},
        f"{BASE_URL}/elements/PADC/elements": {"Items": [
            item("C-01", "C01", template="well"),
        ]},
    }
    add_well(routes, "B01", {"Oil_Rate": 100, "Liquid_Rate": 150, "Water_Cut": 33.3,
                             "ESP_Frequency": 55, "Plan_Target": 100})
    add_well(routes, "B02", {"Oil_Rate": 0, "Liquid_Rate": 0, "Water_Cut": 0,
                             "ESP_Frequency": 0, "Plan_Target": 80})
    add_well(routes, "METER", {"Flow": 12})
    add_well(routes, "C01", {"Oil_Rate": 200, "Liquid_Rate": 250, "Water_Cut": 20,
                             "Plan_Target": 190})
    return routes


@pytest.fixture
def af_routes():
    return build_af_routes()


@pytest.fixture
def fake_transport(af_routes):
    return FakeTransport(af_routes, probes={BASE_URL: 200})
