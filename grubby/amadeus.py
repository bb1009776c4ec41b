import time
import logging
from typing import Dict, List, Optional
from urllib.parse import quote_plus

from grubby import config, net
from grubby.errors import FunctionError, require

logger = logging.getLogger(__name__)

AMADEUS_TOKEN = {"access_token": None, "exp": 0}

FALLBACK_LOCATIONS = [
    {"id": "JFK", "name": "John F. Kennedy International Airport", "iataCode": "JFK",
     "address": {"cityName": "New York", "countryName": "United States"}},
    {"id": "LAX", "name": "Los Angeles International Airport", "iataCode": "LAX",
     "address": {"cityName": "Los Angeles", "countryName": "United States"}},
    {"id": "LHR", "name": "London Heathrow Airport", "iataCode": "LHR",
     "address": {"cityName": "London", "countryName": "United Kingdom"}},
    {"id": "CDG", "name": "Charles de Gaulle Airport", "iataCode": "CDG",
     "address": {"cityName": "Paris", "countryName": "France"}},
    {"id": "NRT", "name": "Narita International Airport", "iataCode": "NRT",
     "address": {"cityName": "Tokyo", "countryName": "Japan"}},
]


def amadeus_token() -> str:
    require(config.AMADEUS_KEY and config.AMADEUS_SECRET, "Amadeus API credentials")
    now = time.time()
    if AMADEUS_TOKEN["access_token"] and now < AMADEUS_TOKEN["exp"] - 30:
        return AMADEUS_TOKEN["access_token"]
    tok = net.post_json(
        f"{config.AMADEUS_HOST}/v1/security/oauth2/token",
        data={"grant_type": "client_credentials", "client_id": config.AMADEUS_KEY,
              "client_secret": config.AMADEUS_SECRET},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        timeout=20, label="Amadeus authentication", status=401,
    )
    AMADEUS_TOKEN["access_token"] = tok.get("access_token")
    AMADEUS_TOKEN["exp"] = now + int(tok.get("expires_in", 0))
    logger.info("Amadeus token obtained")
    return AMADEUS_TOKEN["access_token"]


def reset_token():
    AMADEUS_TOKEN["access_token"] = None
    AMADEUS_TOKEN["exp"] = 0


def _auth():
    return {"Authorization": f"Bearer {amadeus_token()}"}


def amadeus_get(path, params=None, label="Amadeus API", timeout=25):
    return net.get_json(f"{config.AMADEUS_HOST}{path}", params=params, headers=_auth(),
                        timeout=timeout, label=label, status=None)


def _or_empty(path, params, label):
    try:
        return amadeus_get(path, params, label=label)
    except FunctionError as e:
        logger.warning("%s not available: %s", label, e.message)
        return {"data": []}


# ───────────────── Reference data ─────────────────
def points_of_interest(lat, lon, radius=5, categories=None):
    if not lat or not lon:
        raise FunctionError("Latitude and longitude are required", status=400)
    params = {"latitude": lat, "longitude": lon, "radius": radius,
              "categories": ",".join(categories or ["RESTAURANT"])}
    return amadeus_get("/v1/reference-data/locations/pois", params, label="Points of interest")


def search_cities(keyword):
    if not keyword:
        raise FunctionError("Keyword is required", status=400)
    return amadeus_get("/v1/reference-data/locations/cities", {"keyword": keyword, "max": 10},
                       label="City search")


def fallback_locations(keyword: str) -> Dict:
    k = (keyword or "").lower()
    return {"data": [loc for loc in FALLBACK_LOCATIONS
                     if k in loc["name"].lower() or k in loc["iataCode"].lower()
                     or k in loc["address"]["cityName"].lower()]}


def search_locations(keyword):
    try:
        return amadeus_get("/v1/reference-data/locations",
                           {"keyword": keyword, "max": 20, "page[limit]": 20}, label="Location search")
    except FunctionError as e:
        logger.warning("Location search failed, using fallback: %s", e.message)
        return fallback_locations(keyword)


def airport_info(airport_code):
    return _or_empty("/v1/reference-data/locations/airports", {"keyword": airport_code}, "Airport info")


def airline_info(airline_code):
    return _or_empty("/v1/reference-data/airlines", {"airlineCodes": airline_code}, "Airline info")


def flight_status(carrier_code, flight_number, scheduled_departure_date):
    params = {"carrierCode": carrier_code, "flightNumber": flight_number,
              "scheduledDepartureDate": scheduled_departure_date}
    return _or_empty("/v2/schedule/flights", params, "Flight status")


def flight_price_calendar(origin, destination, departure_date, one_way=True):
    params = {"origin": origin, "destination": destination, "departureDate": departure_date,
              "oneWay": str(bool(one_way)).lower()}
    return _or_empty("/v1/shopping/flight-dates", params, "Price calendar")


# ───────────────── Flight offers ─────────────────
OPTIONAL_OFFER_PARAMS = ("returnDate", "children", "infants", "travelClass", "maxPrice")


def flight_offer_params(body: Dict) -> Dict:
    params = {
        "originLocationCode": body.get("originLocationCode"),
        "destinationLocationCode": body.get("destinationLocationCode"),
        "departureDate": body.get("departureDate"),
        "adults": body.get("adults") or 1,
        "currencyCode": body.get("currencyCode") or "USD",
        "max": body.get("max") or 20,
    }
    missing = [k for k in ("originLocationCode", "destinationLocationCode", "departureDate") if not params[k]]
    if missing:
        raise FunctionError(f"Missing required parameters: {', '.join(missing)}", status=400)
    for k in OPTIONAL_OFFER_PARAMS:
        if body.get(k):
            params[k] = body[k]
    if body.get("nonStop"):
        params["nonStop"] = "true"
    return params


def search_flight_offers(body: Dict) -> Dict:
    params = flight_offer_params(body)
    logger.info("Amadeus flight search %s -> %s on %s", params["originLocationCode"],
                params["destinationLocationCode"], params["departureDate"])
    try:
        data = amadeus_get("/v2/shopping/flight-offers", params, label="Amadeus flight search")
    except FunctionError as e:
        if e.status == 404:
            return {"data": [], "meta": {"count": 0}}
        raise
    logger.info("Amadeus returned %d offers", len(data.get("data") or []))
    return data


def summarize_offers(data: Dict) -> List[Dict]:
    carriers_map = (data.get("dictionaries") or {}).get("carriers") or {}
    out = []
    for it in data.get("data", []) or []:
        price = it.get("price", {})
        itin = it.get("itineraries", [])
        codes = []; stops = 0
        for i in itin:
            segs = i.get("segments", [])
            stops = max(stops, max(len(segs) - 1, 0))
            for s in segs:
                c = s.get("carrierCode")
                if c and c not in codes: codes.append(c)
        first = itin[0]["segments"][0] if itin and itin[0].get("segments") else {}
        last = itin[0]["segments"][-1] if itin and itin[0].get("segments") else {}
        origin = (first.get("departure") or {}).get("iataCode", "")
        dest = (last.get("arrival") or {}).get("iataCode", "")
        out.append({
            "id": it.get("id"),
            "price": price.get("total"),
            "currency": price.get("currency"),
            "duration": itin[0].get("duration", "?") if itin else "?",
            "carriers": [carriers_map.get(c, c) for c in codes],
            "stops": stops,
            "deeplink": "https://www.google.com/travel/flights?q=" + quote_plus(f"Flights from {origin} to {dest}"),
        })
    return out


def parse_iata(text) -> Optional[str]:
    t = (text or "").strip().upper()
    return t if len(t) == 3 and t.isalpha() else None
