from __future__ import annotations

"""
Flickr photos.search request/response helpers (no I/O here).

Request: GET {base_url}?method=flickr.photos.search&api_key=..&bbox=..&extras=url_s
         &safe_search=1&per_page=21&format=json&nojsoncallback=1[&page=N]

Response (subset):
    {
      "stat": "ok",
      "photos": {"page": 1, "pages": 12, "photo": [{"id": "123", "url_s": "https://..."}, ...]}
    }
"""

import json
from typing import Dict, List, Mapping, Optional
from urllib.parse import urlencode

from common.errors import ParseError
from common.geo import BoundingBox


PAGE = "page"
BBOX = "bbox"


def search_params(
    api_key: str,
    bbox: BoundingBox,
    *,
    method: str = "flickr.photos.search",
    extras: str = "url_s",
    safe_search: int = 1,
    per_page: int = 21,
    extra: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Fixed API params, then caller extras (e.g. page), then the bbox."""
    params = {
        "method": method,
        "api_key": api_key,
        "extras": extras,
        "safe_search": str(int(safe_search)),
        "per_page": str(int(per_page)),
        "format": "json",
        "nojsoncallback": "1",
    }
    if extra:
        params.update({str(k): str(v) for k, v in extra.items()})
    params[BBOX] = bbox.to_param()
    return params


def search_url(base_url: str, params: Mapping[str, str]) -> str:
    return f"{base_url}?{urlencode(params)}"


def _text(v) -> str:
    # same emptiness rule as Photo's field validator
    return "" if v is None else str(v).strip()


def parse_photo_descriptors(body: bytes | str, url_key: str = "url_s") -> List[Dict[str, str]]:
    """
    Return [{"photo_id", "url_small"}, ...] in response order.
    Anything off-schema raises ParseError; no partial lists.
    """
    try:
        doc = json.loads(body)
    except (TypeError, ValueError) as e:
        raise ParseError(f"response is not JSON: {e}") from e

    if not isinstance(doc, dict):
        raise ParseError("response is not a JSON object")
    if doc.get("stat") != "ok":
        raise ParseError(f"stat={doc.get('stat')!r}: {doc.get('message', 'no message')}")

    photos = doc.get("photos")
    if not isinstance(photos, dict) or not isinstance(photos.get("photo"), list):
        raise ParseError("missing photos.photo list")

    out: List[Dict[str, str]] = []
    for i, d in enumerate(photos["photo"]):
        if not isinstance(d, dict):
            raise ParseError(f"descriptor #{i} is not an object")
        pid = _text(d.get("id"))
        url = _text(d.get(url_key))
        if not pid or not url:
            raise ParseError(f"descriptor #{i} lacks id or {url_key}")
        out.append({"photo_id": pid, "url_small": url})
    return out
