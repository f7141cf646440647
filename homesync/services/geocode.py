from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import requests

from homesync.text import clean_region_prefix, strip_district

KAKAO_ADDRESS_ENDPOINT = "https://dapi.kakao.com/v2/local/search/address.json"


class GeocodeError(RuntimeError):
    def __init__(self, status_code: int, message: str = ""):
        super().__init__(message or f"HTTP {status_code}")
        self.status_code = status_code


@dataclass(frozen=True)
class GeocodeMatch:
    lot_address: str
    road_address: str = ""

    @property
    def display(self) -> str:
        """Lot address with the road address in parentheses, when there is one."""
        if self.road_address:
            return f"{self.lot_address} ({self.road_address})"
        return self.lot_address


def match_from_document(doc: dict) -> GeocodeMatch:
    address = doc.get("address") or {}
    lot = clean_region_prefix(address.get("address_name") or doc.get("address_name") or "")

    road = ""
    road_address = doc.get("road_address") or {}
    if road_address.get("address_name"):
        road = strip_district(clean_region_prefix(road_address["address_name"]))
    return GeocodeMatch(lot_address=lot, road_address=road)


class KakaoGeocoder:
    def __init__(self, api_key: str, timeout_s: int = 30, endpoint: str = KAKAO_ADDRESS_ENDPOINT):
        self.api_key = (api_key or "").strip()
        if not self.api_key:
            raise RuntimeError("Missing env var: KAKAO_API_KEY")
        self.timeout_s = timeout_s
        self.endpoint = endpoint

    def lookup(self, query: str) -> Optional[GeocodeMatch]:
        """First match for query; None when the service finds nothing.

        Raises GeocodeError on a non-200 response.
        """
        headers = {"Authorization": f"KakaoAK {self.api_key}"}
        r = requests.get(self.endpoint, params={"query": query}, headers=headers, timeout=self.timeout_s)
        if r.status_code != 200:
            raise GeocodeError(r.status_code)

        data = r.json() or {}
        documents = data.get("documents") or []
        if not documents:
            return None
        return match_from_document(documents[0])
