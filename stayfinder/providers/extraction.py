"""
Extraction of listing ids and detail fields from provider JSON payloads.

The provider responses are deeply nested GraphQL documents whose shape shifts
between releases, so every extractor walks the whole tree and matches on keys
or __typename instead of fixed paths.
"""

import math
from typing import Any, Dict, Iterator, List, Optional, Tuple

from stayfinder.models import DerivedRecord


def walk_json(node: Any) -> Iterator[Dict[str, Any]]:
    """Yield every dict in a JSON tree, depth-first, parents before children."""
    if isinstance(node, list):
        for value in node:
            yield from walk_json(value)
    elif isinstance(node, dict):
        yield node
        for value in node.values():
            yield from walk_json(value)


def extract_listing_ids(root: Any) -> List[str]:
    """
    Collect listing ids from every staysInViewport list in a search response.

    Returns:
        Ids in first-seen order with duplicates removed
    """
    seen = set()
    ids: List[str] = []
    for obj in walk_json(root):
        stays = obj.get('staysInViewport')
        if not isinstance(stays, list):
            continue
        for item in stays:
            if not isinstance(item, dict):
                continue
            listing_id = item.get('listingId')
            if isinstance(listing_id, str) and listing_id and listing_id not in seen:
                seen.add(listing_id)
                ids.append(listing_id)
    return ids


def collect_html_texts(root: Any) -> List[str]:
    """Unique htmlText strings in document order."""
    seen = set()
    texts: List[str] = []
    for obj in walk_json(root):
        text = obj.get('htmlText')
        if isinstance(text, str) and text not in seen:
            seen.add(text)
            texts.append(text)
    return texts


def collect_structured_items(root: Any) -> List[dict]:
    """Title and action of every PdpSbuiBasicListItem node."""
    items = []
    for obj in walk_json(root):
        if obj.get('__typename') == 'PdpSbuiBasicListItem':
            title = obj.get('title')
            items.append({
                'title': title if isinstance(title, str) else None,
                'action': obj.get('action'),
            })
    return items


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


def extract_coordinates(root: Any) -> Tuple[Optional[float], Optional[float]]:
    """Coordinates of the first LocationSection with numeric lat and lng."""
    for obj in walk_json(root):
        if obj.get('__typename') == 'LocationSection':
            lat, lng = obj.get('lat'), obj.get('lng')
            if _is_number(lat) and _is_number(lng):
                return float(lat), float(lng)
    return None, None


def derive_record(listing_id: str, payload: Any) -> DerivedRecord:
    """Build the DerivedRecord for one listing detail response."""
    lat, lng = extract_coordinates(payload)
    return DerivedRecord(
        listing_id=listing_id,
        html_texts=collect_html_texts(payload),
        structured_items=collect_structured_items(payload),
        lat=lat,
        lng=lng,
    )
