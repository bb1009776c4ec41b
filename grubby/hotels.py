import time
import random
import logging
from typing import Dict, List, Optional

from grubby import amadeus
from grubby.errors import FunctionError

logger = logging.getLogger(__name__)

HOTEL_PHOTO = "https://images.unsplash.com/photo-1566073771259-6a8506099945?w=400&q=80&auto=format&fit=crop"
DEFAULT_CHECK_IN = "2025-01-15"
DEFAULT_CHECK_OUT = "2025-01-16"

MOCK_TEMPLATES = [
    ("Grand Hotel {location}", 5, 350),
    ("Hotel {location} Plaza", 4, 220),
    ("Best Western {location}", 3, 120),
    ("Marriott {location}", 4, 280),
    ("Hilton {location}", 4, 290),
    ("Ibis {location}", 3, 95),
    ("Novotel {location}", 4, 180),
    ("Radisson {location}", 4, 200),
    ("Holiday Inn {location}", 3, 140),
    ("Comfort Inn {location}", 3, 110),
]
MOCK_AMENITIES = ["Free WiFi", "Air Conditioning", "Room Service", "24-hour Front Desk",
                  "Fitness Center", "Business Center"]


# ───────────────── Mock fallback ─────────────────
def generate_mock_hotels(location, check_in, check_out, guests) -> List[Dict]:
    out = []
    for idx, (name, stars, price) in enumerate(MOCK_TEMPLATES):
        out.append({
            "id": f"mock-{location.lower()}-{idx}",
            "name": name.replace("{location}", location),
            "address": f"{100 + idx} Main Street, {location}",
            "description": f"Comfortable accommodations in the heart of {location} with modern amenities and excellent service.",
            "stars": stars,
            "rating": round(4.0 + random.random(), 1),
            "priceRange": f"USD {price} per night",
            "amenities": MOCK_AMENITIES[:4 + random.randint(0, 1)],
            "photos": [HOTEL_PHOTO],
            "latitude": None, "longitude": None,
            "website": "https://www.booking.com",
            "phone": f"+1-555-{random.randint(1000, 9999)}",
            "realData": False,
            "source": "MOCK_DATA_FALLBACK",
            "checkInDate": check_in, "checkOutDate": check_out, "adults": guests,
        })
    return out


def mock_named(location, check_in, check_out, guests, hotel_name, source=None):
    hotels = generate_mock_hotels(location, check_in, check_out, guests)
    for h in hotels:
        if hotel_name not in h["name"]:
            h["name"] = f"{hotel_name} {location}"
        h["description"] = f"{hotel_name} - Located in {location}, offering premium accommodations and services."
        if source: h["source"] = source
    return hotels


# ───────────────── Amadeus chain ─────────────────
def _try_get(path, params, label):
    try:
        return amadeus.amadeus_get(path, params, label=label)
    except FunctionError as e:
        logger.warning("%s failed: %s", label, e.message)
        return None


def _address(addr, location, all_lines=False):
    if not addr: return location
    lines = addr.get("lines") or []
    first = ", ".join(lines) if all_lines else (lines[0] if lines else "")
    return f"{first}, {addr.get('cityName') or location}"


def _hotel(h, idx, location, check_in, check_out, guests, source, fallback_geo=None, description=None):
    geo = h.get("geoCode") or {}
    fallback_geo = fallback_geo or {}
    autocomplete = source == "AMADEUS_HOTEL_AUTOCOMPLETE_API"
    return {
        "id": h.get("hotelId") or h.get("id") or f"amadeus-{int(time.time() * 1000)}-{idx}",
        "name": h.get("name") or f"Hotel in {location}",
        "address": _address(h.get("address"), location, all_lines=autocomplete),
        "description": description or f"Located in {location}, this hotel offers comfortable accommodations and modern amenities.",
        "rating": round(4.0 + random.random(), 1),
        "priceRange": f"USD {150 + random.randint(0, 199)} per night",
        "amenities": MOCK_AMENITIES[:4],
        "photos": [HOTEL_PHOTO],
        "latitude": geo.get("latitude") or fallback_geo.get("latitude"),
        "longitude": geo.get("longitude") or fallback_geo.get("longitude"),
        "website": "https://www.amadeus.com",
        "phone": "Contact hotel directly",
        "realData": True,
        "source": source,
        "checkInDate": check_in, "checkOutDate": check_out, "adults": guests,
    }


def autocomplete_hotels(location, hotel_name, check_in, check_out, guests) -> Optional[List[Dict]]:
    data = _try_get("/v1/reference-data/locations/hotel",
                    {"keyword": f"{hotel_name} {location}", "subType": "HOTEL_LEISURE", "max": 20},
                    "Hotel autocomplete")
    found = (data or {}).get("data") or []
    logger.info("Hotel autocomplete found %d hotels", len(found))
    if not found:
        return None
    return [_hotel(h, i, location, check_in, check_out, guests, "AMADEUS_HOTEL_AUTOCOMPLETE_API",
                   description=f"{h.get('name')} - Located in {location}, offering premium accommodations and services.")
            for i, h in enumerate(found[:10])]


def filter_by_name(hotels: List[Dict], hotel_name: str) -> List[Dict]:
    keywords = hotel_name.lower().split()
    return [h for h in hotels if any(k in (h.get("name") or "").lower() for k in keywords)]


def search_hotels(location, check_in, check_out, guests, hotel_name=None) -> List[Dict]:
    logger.info("Hotel search: %s %s..%s guests=%s name=%s", location, check_in, check_out, guests, hotel_name)
    try:
        amadeus.amadeus_token()

        if hotel_name:
            hotels = autocomplete_hotels(location, hotel_name, check_in, check_out, guests)
            if hotels:
                return hotels
            logger.info("Autocomplete gave nothing, falling back to location search")

        loc = _try_get("/v1/reference-data/locations", {"keyword": location, "subType": "CITY"}, "Location search")
        if not loc or not loc.get("data"):
            logger.warning("No location data for %s, using mock data", location)
            return generate_mock_hotels(location, check_in, check_out, guests)
        best = loc["data"][0]
        geo = best.get("geoCode") or {}

        if geo.get("latitude") and geo.get("longitude"):
            listing = _try_get("/v1/reference-data/locations/hotels/by-geocode",
                               {"latitude": geo["latitude"], "longitude": geo["longitude"],
                                "radius": 25, "radiusUnit": "KM"}, "Hotel list")
        elif (best.get("address") or {}).get("cityCode") or best.get("iataCode"):
            code = (best.get("address") or {}).get("cityCode") or best.get("iataCode")
            listing = _try_get("/v1/reference-data/locations/hotels/by-city", {"cityCode": code}, "Hotel list")
        else:
            logger.warning("No geocode or city code for %s, using mock data", location)
            return generate_mock_hotels(location, check_in, check_out, guests)

        if listing is None:
            return generate_mock_hotels(location, check_in, check_out, guests)
        found = listing.get("data") or []
        if not found:
            if hotel_name:
                return mock_named(location, check_in, check_out, guests, hotel_name)
            return generate_mock_hotels(location, check_in, check_out, guests)

        if hotel_name:
            found = filter_by_name(found, hotel_name)
            logger.info("Hotels after name filter: %d", len(found))
        hotels = [_hotel(h, i, location, check_in, check_out, guests, "AMADEUS_HOTEL_LIST_API", fallback_geo=geo)
                  for i, h in enumerate(found[:10])]
        if not hotels and hotel_name:
            return mock_named(location, check_in, check_out, guests, hotel_name, source="MOCK_DATA_NAME_FALLBACK")
        return hotels
    except Exception as e:
        logger.error("Hotel search failed, falling back to mock data: %s", e)
        return generate_mock_hotels(location, check_in, check_out, guests)


def search_params(body: Dict) -> Dict:
    location = (body.get("location") or "").strip()
    if not location:
        raise FunctionError("Location is required", status=400)
    return {
        "location": location,
        "checkInDate": body.get("checkInDate") or DEFAULT_CHECK_IN,
        "checkOutDate": body.get("checkOutDate") or DEFAULT_CHECK_OUT,
        "guests": body.get("guests") or 1,
        "hotelName": (body.get("hotelName") or "").strip() or None,
    }
