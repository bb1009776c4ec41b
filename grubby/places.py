import logging
from datetime import date
from typing import Dict, List, Optional

from grubby import config, geocode, net, store
from grubby.errors import FunctionError, require

logger = logging.getLogger(__name__)

PLACES_HOST = "https://maps.googleapis.com/maps/api/place"
DETAILS_FIELDS = ("place_id,name,formatted_address,formatted_phone_number,website,rating,"
                  "user_ratings_total,price_level,opening_hours,photos,geometry,types,reviews,reservable")
GENERIC_TYPES = {"restaurant", "food", "establishment", "point_of_interest"}


def api_key():
    return require(config.GOOGLE_PLACES_KEY, "Google Places API key")


def check_status(data: Dict) -> Dict:
    status = data.get("status")
    if status in ("OK", "ZERO_RESULTS"):
        return data
    msg = data.get("error_message") or "Unknown error"
    logger.error("Google Places API error: %s - %s", status, msg)
    if status == "OVER_QUERY_LIMIT":
        raise FunctionError("Google Places API quota exceeded. Please try again later.", status=429)
    if status == "REQUEST_DENIED":
        raise FunctionError("Google Places API request denied. Check the API key and billing.", status=500, details=msg)
    raise FunctionError(f"Google Places API error: {status} - {msg}", status=500)


def places_get(endpoint, params, timeout=10):
    params = dict(params, key=api_key())
    data = net.get_json(f"{PLACES_HOST}/{endpoint}/json", params=params, timeout=timeout, label="Google Places API")
    return check_status(data)


def photo_url(ref, maxwidth=400):
    return f"{PLACES_HOST}/photo?maxwidth={maxwidth}&photo_reference={ref}&key={config.GOOGLE_PLACES_KEY}"


# ───────────────── Raw proxy ─────────────────
def places_search(query, location=None, radius=50000):
    params = {"query": query}
    if location:
        params.update({"location": location, "radius": radius, "locationbias": f"circle:{radius}@{location}"})
    return places_get("textsearch", params)


def place_details(place_id):
    if not place_id:
        raise FunctionError("Place ID required for details request", status=400)
    data = places_get("details", {"place_id": place_id, "fields": DETAILS_FIELDS, "reviews_sort": "newest"})
    if data.get("result"):
        cache_place(data["result"])
    return data


def nearby_search(location, radius=50000):
    if not location:
        raise FunctionError("Location required for nearby search", status=400)
    return places_get("nearbysearch", {"location": location, "radius": radius})


def cache_place(place: Dict) -> None:
    parts = [p.strip() for p in (place.get("formatted_address") or "").split(",")]
    types = [t for t in place.get("types") or [] if t not in {"establishment", "point_of_interest", "food"}]
    loc = (place.get("geometry") or {}).get("location") or {}
    row = {
        "google_place_id": place.get("place_id"),
        "name": place.get("name"),
        "address": place.get("formatted_address"),
        "city": parts[-2] if len(parts) >= 2 else "",
        "country": parts[-1] if parts else "",
        "cuisine": types[0] if types else "restaurant",
        "rating": place.get("rating"),
        "phone_number": place.get("formatted_phone_number"),
        "website": place.get("website"),
        "opening_hours": "\n".join((place.get("opening_hours") or {}).get("weekday_text") or []) or None,
        "price_range": place.get("price_level"),
        "latitude": loc.get("lat"), "longitude": loc.get("lng"),
        "photos": [photo_url(p["photo_reference"]) for p in (place.get("photos") or [])[:3]],
        "notes": "Cached from Google Places API",
    }
    try:
        store.cache_place(row)
    except Exception as e:
        logger.warning("Caching place %s failed: %s", place.get("place_id"), e)


# ───────────────── Restaurant shaping ─────────────────
def current_day_hours(weekday_text: List[str], today: Optional[date] = None) -> Optional[str]:
    if not weekday_text: return None
    today = today or date.today()
    line = weekday_text[today.weekday()] if today.weekday() < len(weekday_text) else None
    if not line: return None
    return line.split(":", 1)[1].strip() if ":" in line else line


def cuisine_from_types(types) -> str:
    for t in types or []:
        if t not in GENERIC_TYPES:
            return t.replace("_", " ").title()
    return "Restaurant"


def to_restaurant(place: Dict, today: Optional[date] = None) -> Dict:
    hours = place.get("opening_hours") or {}
    loc = (place.get("geometry") or {}).get("location") or {}
    return {
        "id": place.get("place_id"),
        "name": place.get("name"),
        "address": place.get("formatted_address"),
        "rating": place.get("rating") or 0,
        "reviewCount": place.get("user_ratings_total"),
        "priceRange": place.get("price_level") or 2,
        "isOpen": hours.get("open_now"),
        "phoneNumber": place.get("formatted_phone_number"),
        "website": place.get("website"),
        "openingHours": hours.get("weekday_text") or [],
        "currentDayHours": current_day_hours(hours.get("weekday_text"), today),
        "photos": [photo_url(p["photo_reference"]) for p in place.get("photos") or [] if p.get("photo_reference")],
        "location": {"lat": loc.get("lat") or 0, "lng": loc.get("lng") or 0},
        "cuisine": cuisine_from_types(place.get("types")),
        "googleMapsUrl": f"https://www.google.com/maps/place/?q=place_id:{place.get('place_id')}",
        "michelinStars": 0,
    }


def restaurant_search(query, location=None, radius=10000, limit=20) -> Dict:
    if not query or not query.strip():
        raise FunctionError("Search query is required", status=400)
    api_key()
    logger.info("Searching restaurants: %s in %s (radius %s, limit %s)", query, location, radius, limit)
    params = {"query": f"{query} restaurant", "type": "restaurant"}
    if location and location != "current location":
        coords = geocode.google_geocode(location)
        if coords:
            params.update({"location": f"{coords[0]},{coords[1]}", "radius": radius})
        else:
            params["region"] = location
    data = places_get("textsearch", params)
    restaurants = [to_restaurant(p) for p in (data.get("results") or [])[:int(limit)]]
    logger.info("Found %d restaurants", len(restaurants))
    return {"success": True, "restaurants": restaurants, "total": len(restaurants)}


def location_suggestions(text, limit=5) -> Dict:
    if not text or len(text.strip()) < 2:
        return {"success": True, "suggestions": []}
    data = places_get("autocomplete", {"input": text, "types": "(cities)"})
    suggestions = []
    for p in (data.get("predictions") or [])[:int(limit)]:
        fmt = p.get("structured_formatting") or {}
        suggestions.append({
            "id": p.get("place_id"),
            "description": p.get("description"),
            "mainText": fmt.get("main_text") or p.get("description"),
            "secondaryText": fmt.get("secondary_text") or "",
        })
    return {"success": True, "suggestions": suggestions}
