"""Restaurant discovery: Google Places text search, paged, then per-place
details, cuisine and Yelp enrichment fanned out over a thread pool."""
import time
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Dict, List, Optional

from grubby import config, cuisine, net, places, yelp
from grubby.errors import FunctionError

logger = logging.getLogger(__name__)

MAX_PAGES = 3
DEFAULT_LOCATION = "New York, NY"
DETAIL_FIELDS = "name,formatted_address,formatted_phone_number,website,opening_hours,price_level,rating,types,photos,geometry"
CUISINE_KEYWORDS = ["italian", "chinese", "japanese", "sushi", "mexican", "french", "indian", "thai",
                    "mediterranean", "greek", "korean", "pizza", "steakhouse", "seafood", "vegetarian",
                    "cafe", "bakery"]
HOURS_UNKNOWN = "Hours vary - please call ahead"


def build_discovery_query(query: str, location: str) -> str:
    q = (query or "").lower()
    kind = next((k for k in CUISINE_KEYWORDS if k in q), "")
    search = f"{kind} restaurants in {location}" if kind else f"restaurants in {location}"
    if "michelin" in q:
        return f"michelin star {search}"
    if "fine dining" in q:
        return f"fine dining {search}"
    return search


def collect_places(search_query: str, max_pages: int = MAX_PAGES) -> List[Dict]:
    first = places.places_get("textsearch", {"query": search_query, "type": "restaurant", "radius": 50000})
    results = list(first.get("results") or [])
    token = first.get("next_page_token")
    page = 1
    while token and page < max_pages:
        time.sleep(config.PAGE_TOKEN_DELAY)
        try:
            nxt = places.places_get("textsearch", {"pagetoken": token})
        except FunctionError as e:
            logger.warning("Stopping pagination after page %d: %s", page, e.message)
            break
        results.extend(nxt.get("results") or [])
        token = nxt.get("next_page_token")
        page += 1
    logger.info("Collected %d places over %d page(s)", len(results), page)
    return results


def fetch_details(place_id) -> Optional[Dict]:
    if not place_id: return None
    data = net.safe_json(f"{places.PLACES_HOST}/details/json",
                         {"place_id": place_id, "fields": DETAIL_FIELDS, "key": config.GOOGLE_PLACES_KEY},
                         timeout=10)
    if data and data.get("status") == "OK":
        return data.get("result")
    return None


def split_address(address: str, search_location: str):
    parts = (address or "").split(", ") if address else []
    if len(parts) >= 2:
        city = parts[-3] if len(parts) >= 3 else parts[-2]
    else:
        city = search_location.split(",")[0]
    country = parts[-1] if parts else "Unknown"
    return "".join(c for c in city if not c.isdigit()).strip(), country


def hours_text(details: Optional[Dict], today: Optional[date] = None) -> str:
    oh = (details or {}).get("opening_hours") or {}
    if oh.get("weekday_text"):
        today = today or date.today()
        text = oh["weekday_text"]
        return text[today.weekday()] if today.weekday() < len(text) else HOURS_UNKNOWN
    if oh.get("open_now") is not None:
        return "Currently open" if oh["open_now"] else "Currently closed"
    return HOURS_UNKNOWN


def clamp_price(level) -> int:
    if not level: return 2
    return min(max(int(level), 1), 4)


def features_for(types, price_range, opening_hours) -> List[str]:
    out = []
    if "takeout" in types: out.append("Takeout Available")
    if "delivery" in types: out.append("Delivery")
    if "reservations" in types: out.append("Reservations")
    if price_range >= 3: out.append("Fine Dining")
    if "bar" in types: out.append("Full Bar")
    if "open" in opening_hours.lower(): out.append("Currently Open")
    return out


def enrich_place(place: Dict, search_location: str, today: Optional[date] = None) -> Dict:
    details = fetch_details(place.get("place_id")) or {}
    merged = dict(place, **details)
    name = merged.get("name") or "Unknown Restaurant"
    address = merged.get("formatted_address") or "Address not available"
    city, country = split_address(merged.get("formatted_address"), search_location)
    types = merged.get("types") or []

    kind = cuisine.map_place_type_to_cuisine(types, name)
    if kind == "Restaurant":
        kind = cuisine.detect_cuisine(name, address, types)

    price_range = clamp_price(merged.get("price_level"))
    opening = hours_text(details, today)
    rating = merged.get("rating")
    loc = (merged.get("geometry") or {}).get("location") or {}
    photos = merged.get("photos") or []
    restaurant = {
        "id": place.get("place_id"),
        "name": name,
        "address": address,
        "cuisine": kind,
        "priceRange": price_range,
        "rating": round(rating, 1) if rating else 4.0,
        "description": f"A {kind.lower()} restaurant in {city}. " + (f"Rated {rating} stars." if rating else "Popular local spot."),
        "website": merged.get("website"),
        "reservationUrl": None,
        "phoneNumber": merged.get("formatted_phone_number"),
        "openingHours": opening,
        "features": features_for(types, price_range, opening),
        "location": {"lat": loc.get("lat") or 0, "lng": loc.get("lng") or 0, "city": city, "country": country},
        "images": [places.photo_url(photos[0]["photo_reference"])] if photos and photos[0].get("photo_reference") else [],
        "isOpen": (merged.get("opening_hours") or {}).get("open_now", True),
    }

    match = yelp.match_business(name, loc.get("lat"), loc.get("lng"))
    if match:
        restaurant.update({
            "yelpRating": match.get("rating"),
            "yelpReviewCount": match.get("review_count"),
            "yelpUrl": match.get("url"),
            "yelpPrice": match.get("price"),
        })
    return restaurant


def _safe_enrich(place, search_location):
    try:
        return enrich_place(place, search_location)
    except Exception as e:
        logger.error("Error processing place %s: %s", place.get("name"), e)
        return None


def discover_restaurants(query, location=None, limit=50) -> Dict:
    if not query:
        raise FunctionError("Search query is required", status=400)
    places.api_key()
    search_location = location or DEFAULT_LOCATION
    search_query = build_discovery_query(query, search_location)
    logger.info("Restaurant discovery: %s", search_query)

    found = collect_places(search_query)[:int(limit)]
    if not found:
        return {"restaurants": [], "searchQuery": query, "location": search_location, "totalResults": 0,
                "source": "google_places",
                "message": "No restaurants found for your search criteria. Try a different location or cuisine type."}

    with ThreadPoolExecutor(max_workers=config.DISCOVERY_MAX_WORKERS) as pool:
        enriched = list(pool.map(lambda p: _safe_enrich(p, search_location), found))
    restaurants = [r for r in enriched if r]
    logger.info("Processed %d of %d restaurants", len(restaurants), len(found))
    return {"restaurants": restaurants, "searchQuery": query, "location": search_location,
            "totalResults": len(restaurants), "source": "google_places"}
