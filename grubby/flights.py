"""FlightAPI.io search and offer shaping.

FlightAPI.io answers with parallel ``places``, ``carriers``, ``legs`` and
``segments`` arrays that itineraries reference by id. The transformer builds
one lookup map per array and joins them per itinerary in a single pass.
"""
import logging
from typing import Dict, Iterable, List, Optional

from grubby import amadeus, config, net
from grubby.errors import FunctionError, require

logger = logging.getLogger(__name__)

FLIGHTAPI_HOST = "https://api.flightapi.io"
SKYSCANNER_HOST = "https://www.skyscanner.net"
CABIN_CLASSES = {"economy": "Economy", "premium_economy": "Premium_Economy",
                 "business": "Business", "first": "First"}


def fetch_flightapi(origin, destination, departure_date, return_date=None, adults=1,
                    children=0, infants=0, cabin_class="Economy", currency="USD") -> Dict:
    key = require(config.FLIGHTAPI_KEY, "FlightAPI key")
    cabin = CABIN_CLASSES.get(str(cabin_class).lower(), "Economy")
    if return_date:
        url = (f"{FLIGHTAPI_HOST}/roundtrip/{key}/{origin}/{destination}/{departure_date}/{return_date}"
               f"/{adults}/{children}/{infants}/{cabin}/{currency}")
    else:
        url = (f"{FLIGHTAPI_HOST}/onewaytrip/{key}/{origin}/{destination}/{departure_date}"
               f"/{adults}/{children}/{infants}/{cabin}/{currency}")
    logger.info("FlightAPI search %s -> %s on %s (return %s)", origin, destination, departure_date, return_date)
    return net.get_json(url, timeout=60, label="FlightAPI", status=None)


def build_lookup(items: Optional[Iterable[Dict]]) -> Dict[str, Dict]:
    return {it["id"]: it for it in items or [] if it.get("id") is not None}


def _cheapest(options):
    priced = [o for o in options or [] if (o.get("price") or {}).get("amount") is not None]
    if not priced: return None
    return min(priced, key=lambda o: float(o["price"]["amount"]))


def _deeplink(option):
    items = (option or {}).get("items") or []
    url = items[0].get("url") if items else None
    if url and url.startswith("/"):
        return SKYSCANNER_HOST + url
    return url


def _place(places, pid):
    p = places.get(pid) or {}
    return p.get("display_code") or p.get("iata") or "", p.get("name") or ""


def _segment(seg, places, carriers):
    carrier = carriers.get(seg.get("marketing_carrier_id")) or {}
    origin_code, origin_name = _place(places, seg.get("origin_place_id"))
    dest_code, dest_name = _place(places, seg.get("destination_place_id"))
    return {
        "flightNumber": f'{carrier.get("display_code", "")}{seg.get("marketing_flight_number", "")}',
        "airline": carrier.get("name"),
        "origin": origin_code, "originName": origin_name,
        "destination": dest_code, "destinationName": dest_name,
        "departure": seg.get("departure"), "arrival": seg.get("arrival"),
        "durationMinutes": seg.get("duration"),
    }


def _leg(leg, segments, places, carriers):
    origin_code, origin_name = _place(places, leg.get("origin_place_id"))
    dest_code, dest_name = _place(places, leg.get("destination_place_id"))
    names = []
    for cid in leg.get("marketing_carrier_ids") or []:
        c = carriers.get(cid)
        if c and c.get("name") not in names: names.append(c.get("name"))
    segs = [_segment(segments[s], places, carriers) for s in leg.get("segment_ids") or [] if s in segments]
    stops = leg.get("stop_count")
    if stops is None:
        stops = max(len(segs) - 1, 0)
    return {
        "id": leg.get("id"),
        "origin": origin_code, "originName": origin_name,
        "destination": dest_code, "destinationName": dest_name,
        "departure": leg.get("departure"), "arrival": leg.get("arrival"),
        "durationMinutes": leg.get("duration"),
        "stops": stops,
        "airlines": names,
        "airlineCodes": [carriers[c].get("display_code") for c in leg.get("marketing_carrier_ids") or [] if c in carriers],
        "segments": segs,
    }


def transform_itineraries(raw: Dict, currency: str = "USD") -> List[Dict]:
    places = build_lookup(raw.get("places"))
    carriers = build_lookup(raw.get("carriers"))
    legs = build_lookup(raw.get("legs"))
    segments = build_lookup(raw.get("segments"))

    flights = []
    for itin in raw.get("itineraries") or []:
        joined = [_leg(legs[lid], segments, places, carriers) for lid in itin.get("leg_ids") or [] if lid in legs]
        if not joined:
            continue
        option = _cheapest(itin.get("pricing_options"))
        airlines, codes = [], []
        for leg in joined:
            for name in leg["airlines"]:
                if name not in airlines: airlines.append(name)
            for code in leg["airlineCodes"]:
                if code and code not in codes: codes.append(code)
        flights.append({
            "id": itin.get("id"),
            "price": float(option["price"]["amount"]) if option else None,
            "currency": currency,
            "deeplink": _deeplink(option),
            "legs": joined,
            "airlines": airlines,
            "airlineCodes": codes,
            "stops": max(leg["stops"] for leg in joined),
            "totalDurationMinutes": sum(leg["durationMinutes"] or 0 for leg in joined),
        })
    return flights


def filter_flights(flights: List[Dict], airlines=None, max_stops=None) -> List[Dict]:
    if isinstance(airlines, str):
        airlines = [airlines]
    wanted = {a.strip().lower() for a in airlines or [] if a and a.strip()}
    out = []
    for f in flights:
        if wanted:
            have = {x.lower() for x in f["airlines"] + f["airlineCodes"] if x}
            if not have & wanted:
                continue
        if max_stops is not None and any(leg["stops"] > max_stops for leg in f["legs"]):
            continue
        out.append(f)
    return out


def resolve_code(text):
    if not text or not str(text).strip(): return None
    code = amadeus.parse_iata(text)
    if code: return code
    for loc in amadeus.search_locations(text).get("data", []):
        if loc.get("iataCode"):
            return loc["iataCode"]
    return None


def search_flights(body: Dict) -> Dict:
    origin = resolve_code(body.get("origin"))
    destination = resolve_code(body.get("destination"))
    departure = body.get("departureDate")
    if not origin or not destination or not departure:
        raise FunctionError("origin, destination and departureDate are required", status=400)
    currency = body.get("currency") or "USD"
    max_stops = body.get("maxStops")
    raw = fetch_flightapi(origin, destination, departure, body.get("returnDate"),
                          adults=body.get("adults") or 1, children=body.get("children") or 0,
                          infants=body.get("infants") or 0, cabin_class=body.get("cabinClass") or "Economy",
                          currency=currency)
    flights = transform_itineraries(raw, currency)
    flights = filter_flights(flights, body.get("airlines"), int(max_stops) if max_stops is not None else None)
    flights.sort(key=lambda f: (f["price"] is None, f["price"] or 0))
    limit = int(body.get("limit") or 50)
    logger.info("FlightAPI: %d flights after filtering", len(flights))
    return {"flights": flights[:limit], "total": len(flights),
            "searchParams": {"origin": origin, "destination": destination, "departureDate": departure,
                             "returnDate": body.get("returnDate"), "currency": currency}}
