"""Supabase-backed records: trips, place ratings, itineraries and the
restaurants cache. Every query is scoped to the calling user's id."""
import logging
from datetime import date
from typing import Dict, List, Optional

from supabase import Client, create_client

from grubby import config
from grubby.errors import FunctionError, require

logger = logging.getLogger(__name__)

_CLIENT: Dict[str, Client] = {}

TRIP_FIELDS = ("title", "destination", "start_date", "end_date", "description", "is_public")
RATING_FIELDS = ("trip_id", "place_id", "place_name", "place_type", "address", "latitude", "longitude",
                 "overall_rating", "category_ratings", "notes", "photos", "date_visited", "website",
                 "phone_number", "price_range")
PLACE_TYPES = {"restaurant", "attraction", "hotel", "museum", "park", "shopping", "entertainment",
               "transport", "spa", "bar", "cafe", "beach", "landmark", "activity", "other"}


def get_client() -> Client:
    if "client" not in _CLIENT:
        url = require(config.SUPABASE_URL, "Supabase URL")
        key = require(config.SUPABASE_SERVICE_KEY, "Supabase service key")
        _CLIENT["client"] = create_client(url, key)
    return _CLIENT["client"]


def reset_client():
    _CLIENT.clear()


def current_user_id(client, authorization_header: Optional[str]) -> str:
    scheme, _, token = (authorization_header or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise FunctionError("Authorization bearer token required", status=401)
    try:
        resp = client.auth.get_user(token.strip())
    except Exception as e:
        logger.warning("Token verification failed: %s", e)
        raise FunctionError("Invalid or expired token", status=401)
    user = getattr(resp, "user", None)
    if not user:
        raise FunctionError("Invalid or expired token", status=401)
    return user.id


def _pick(data: Dict, fields) -> Dict:
    return {k: data[k] for k in fields if k in data}


def _one(resp, what) -> Dict:
    if not resp.data:
        raise FunctionError(f"{what} not found", status=404)
    return resp.data[0]


# ───────────────── Trips ─────────────────
def list_trips(client, user_id) -> List[Dict]:
    return client.table("trips").select("*").eq("user_id", user_id).order("created_at", desc=True).execute().data


def create_trip(client, user_id, data: Dict) -> Dict:
    if not data.get("title") or not data.get("destination"):
        raise FunctionError("title and destination are required", status=400)
    row = _pick(data, TRIP_FIELDS)
    row.setdefault("is_public", False)
    row["user_id"] = user_id
    logger.info("Creating trip %r for %s", row["title"], user_id)
    return _one(client.table("trips").insert(row).execute(), "Trip")


def update_trip(client, trip_id, user_id, updates: Dict) -> Dict:
    row = _pick(updates, TRIP_FIELDS)
    if not row:
        raise FunctionError("No updatable fields provided", status=400)
    resp = client.table("trips").update(row).eq("id", trip_id).eq("user_id", user_id).execute()
    return _one(resp, "Trip")


def delete_trip(client, trip_id, user_id) -> None:
    client.table("place_ratings").delete().eq("trip_id", trip_id).eq("user_id", user_id).execute()
    resp = client.table("trips").delete().eq("id", trip_id).eq("user_id", user_id).execute()
    _one(resp, "Trip")


def get_shared_trip(client, trip_id) -> Dict:
    resp = client.table("trips").select("*").eq("id", trip_id).eq("is_public", True).execute()
    trip = _one(resp, "Trip")
    return dict(trip, ratings=list_ratings(client, trip_id))


# ───────────────── Place ratings ─────────────────
def _check_rating(value):
    if value is None: return
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise FunctionError("overall_rating must be a number", status=400)
    if not 0 <= v <= 10:
        raise FunctionError("overall_rating must be between 0 and 10", status=400)


def list_ratings(client, trip_id) -> List[Dict]:
    return client.table("place_ratings").select("*").eq("trip_id", trip_id).order("created_at", desc=True).execute().data


def add_rating(client, user_id, data: Dict) -> Dict:
    if not data.get("trip_id") or not data.get("place_name"):
        raise FunctionError("trip_id and place_name are required", status=400)
    _check_rating(data.get("overall_rating"))
    row = _pick(data, RATING_FIELDS)
    if row.get("place_type") not in PLACE_TYPES:
        row["place_type"] = "other"
    row["user_id"] = user_id
    return _one(client.table("place_ratings").insert(row).execute(), "Rating")


def update_rating(client, rating_id, user_id, updates: Dict) -> Dict:
    _check_rating(updates.get("overall_rating"))
    row = _pick(updates, RATING_FIELDS)
    row.pop("trip_id", None)
    if not row:
        raise FunctionError("No updatable fields provided", status=400)
    resp = client.table("place_ratings").update(row).eq("id", rating_id).eq("user_id", user_id).execute()
    return _one(resp, "Rating")


def delete_rating(client, rating_id, user_id) -> None:
    _one(client.table("place_ratings").delete().eq("id", rating_id).eq("user_id", user_id).execute(), "Rating")


def add_restaurant_to_trip(client, user_id, trip_id, restaurant: Dict) -> Dict:
    loc = restaurant.get("location") or {}
    photos = restaurant.get("photos") or restaurant.get("images") or []
    data = {
        "trip_id": trip_id,
        "place_id": restaurant.get("id"),
        "place_name": restaurant.get("name"),
        "place_type": "restaurant",
        "address": restaurant.get("address"),
        "latitude": loc.get("lat"),
        "longitude": loc.get("lng"),
        "overall_rating": restaurant.get("overall_rating"),
        "notes": restaurant.get("notes"),
        "photos": photos[:5],
        "website": restaurant.get("website"),
        "phone_number": restaurant.get("phoneNumber"),
        "price_range": restaurant.get("priceRange"),
    }
    return add_rating(client, user_id, {k: v for k, v in data.items() if v is not None})


# ───────────────── Itineraries ─────────────────
def _as_date(value, field) -> date:
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise FunctionError(f"{field} must be an ISO date", status=400)


def list_itineraries(client, user_id) -> List[Dict]:
    return client.table("itineraries").select("*").eq("user_id", user_id).order("created_at", desc=True).execute().data


def get_itinerary(client, itinerary_id, user_id) -> Dict:
    resp = client.table("itineraries").select("*").eq("id", itinerary_id).eq("user_id", user_id).execute()
    return _one(resp, "Itinerary")


def save_itinerary(client, user_id, data: Dict) -> Dict:
    missing = [f for f in ("title", "start_date", "end_date") if not data.get(f)]
    if missing:
        raise FunctionError(f"Missing required fields: {', '.join(missing)}", status=400)
    start = _as_date(data["start_date"], "start_date")
    end = _as_date(data["end_date"], "end_date")
    if end < start:
        raise FunctionError("end_date cannot be before start_date", status=400)
    events = data.get("events") or []
    if not isinstance(events, list):
        raise FunctionError("events must be a list", status=400)
    row = {"title": data["title"], "start_date": start.isoformat(), "end_date": end.isoformat(),
           "events": events, "user_id": user_id}
    table = client.table("itineraries")
    if data.get("id"):
        resp = table.update(row).eq("id", data["id"]).eq("user_id", user_id).execute()
    else:
        resp = table.insert(row).execute()
    return _one(resp, "Itinerary")


def delete_itinerary(client, itinerary_id, user_id) -> None:
    _one(client.table("itineraries").delete().eq("id", itinerary_id).eq("user_id", user_id).execute(), "Itinerary")


# ───────────────── Restaurants cache ─────────────────
def cache_place(row: Dict) -> None:
    if not row.get("google_place_id"):
        return
    get_client().table("restaurants").upsert(row, on_conflict="google_place_id").execute()
    logger.debug("Cached place %s", row["google_place_id"])
