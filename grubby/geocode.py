import logging
from typing import Optional, Tuple
from urllib.parse import quote

from grubby import config, net
from grubby.errors import FunctionError, require

logger = logging.getLogger(__name__)

MAPBOX_GEOCODE = "https://api.mapbox.com/geocoding/v5/mapbox.places"
GOOGLE_GEOCODE = "https://maps.googleapis.com/maps/api/geocode/json"


def geocode_address(address, city):
    if not address or not city:
        raise FunctionError("Address and city are required", status=400)
    token = require(config.MAPBOX_TOKEN, "Mapbox token")
    search = f"{address}, {city}"
    logger.info("Geocoding address: %s", search)
    data = net.get_json(f"{MAPBOX_GEOCODE}/{quote(search)}.json", params={"access_token": token},
                        timeout=20, label="Mapbox geocoding")
    features = data.get("features") or []
    if not features:
        raise FunctionError("Location not found", status=404)
    lon, lat = features[0]["center"][:2]
    return {"latitude": lat, "longitude": lon}


def google_geocode(text) -> Optional[Tuple[float, float]]:
    if not config.GOOGLE_PLACES_KEY: return None
    data = net.safe_json(GOOGLE_GEOCODE, {"address": text, "key": config.GOOGLE_PLACES_KEY}, timeout=20)
    if not data or not data.get("results"):
        logger.warning("Geocoding failed for %s, using it as text", text)
        return None
    loc = data["results"][0]["geometry"]["location"]
    logger.info("Geocoded %s to %s, %s", text, loc["lat"], loc["lng"])
    return loc["lat"], loc["lng"]
