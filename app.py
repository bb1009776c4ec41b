import json
import logging
from datetime import datetime, timezone

from flask import Flask, request, jsonify, make_response
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from grubby import config, amadeus, assistant, cuisine, discovery, export, flights, geocode, hotels, places, store, yelp
from grubby.errors import FunctionError

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("grubby.app")

app = Flask(__name__)
CORS(app, origins="*", allow_headers=config.CORS_HEADERS, send_wildcard=True)


def body():
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        raise FunctionError("Invalid JSON in request body", status=400)
    return data


def now_iso():
    return datetime.now(timezone.utc).isoformat()


@app.errorhandler(FunctionError)
def handle_function_error(e):
    return jsonify(e.to_dict()), e.status


@app.errorhandler(Exception)
def handle_unexpected(e):
    if isinstance(e, HTTPException):
        return e
    logger.exception("Unhandled error")
    return jsonify({"error": "Internal server error", "details": str(e)}), 500


@app.get("/health")
def health():
    return jsonify({"status": "ok", "providers": config.provider_status()})


# ───────────────── Amadeus ─────────────────
@app.post("/functions/amadeus-api")
def fn_amadeus_api():
    data = body()
    endpoint = data.get("endpoint")
    logger.info("amadeus-api endpoint=%s", endpoint)
    if endpoint == "points-of-interest":
        return jsonify(amadeus.points_of_interest(data.get("latitude"), data.get("longitude"),
                                                  data.get("radius") or 5, data.get("categories")))
    if endpoint == "search-cities":
        return jsonify(amadeus.search_cities(data.get("keyword")))
    return jsonify({"error": "Invalid endpoint",
                    "available_endpoints": ["points-of-interest - Get restaurants and POIs near a location",
                                            "search-cities - Search for cities"]}), 400


@app.post("/functions/amadeus-enhanced-flight-api")
def fn_amadeus_flights():
    data = body()
    endpoint = data.get("endpoint")
    logger.info("amadeus-enhanced-flight-api endpoint=%s", endpoint)
    if endpoint in ("search-flights", "searchFlights"):
        offers = amadeus.search_flight_offers(data)
        return jsonify(dict(offers, summary=amadeus.summarize_offers(offers)))
    if endpoint == "flight-price-calendar":
        return jsonify(amadeus.flight_price_calendar(data.get("origin"), data.get("destination"),
                                                     data.get("departureDate"), data.get("oneWay", True)))
    if endpoint == "airport-info":
        return jsonify(amadeus.airport_info(data.get("airportCode")))
    if endpoint == "airline-info":
        return jsonify(amadeus.airline_info(data.get("airlineCode")))
    if endpoint == "flight-status":
        return jsonify(amadeus.flight_status(data.get("carrierCode"), data.get("flightNumber"),
                                             data.get("scheduledDepartureDate")))
    if endpoint in ("search-locations", "searchLocations"):
        return jsonify(amadeus.search_locations(data.get("keyword")))
    return jsonify({"error": "Unknown endpoint"}), 400


@app.post("/functions/amadeus-hotel-search")
def fn_hotel_search():
    params = hotels.search_params(body())
    try:
        found = hotels.search_hotels(params["location"], params["checkInDate"], params["checkOutDate"],
                                     params["guests"], params["hotelName"])
        source = found[0]["source"] if found else "AMADEUS_HOTEL_LIST_API"
        return jsonify({"data": found, "searchParams": params, "timestamp": now_iso(),
                        "totalHotels": len(found), "dataSource": source, "apiBase": config.AMADEUS_HOST})
    except Exception as e:
        logger.error("Hotel search crashed, serving mock data: %s", e)
        found = hotels.generate_mock_hotels(params["location"], params["checkInDate"], params["checkOutDate"],
                                            params["guests"])
        return jsonify({"data": found, "searchParams": params, "timestamp": now_iso(),
                        "totalHotels": len(found), "dataSource": "MOCK_DATA_ERROR_FALLBACK",
                        "apiBase": config.AMADEUS_HOST, "error": str(e)})


@app.post("/functions/flight-search")
def fn_flight_search():
    return jsonify(flights.search_flights(body()))


# ───────────────── Places / geocoding ─────────────────
@app.post("/functions/google-places-search")
def fn_places_search():
    data = body()
    kind = data.get("type") or "search"
    radius = data.get("radius") or 50000
    if kind == "search":
        return jsonify(places.places_search(data.get("query"), data.get("location"), radius))
    if kind == "details":
        return jsonify(places.place_details(data.get("placeId")))
    if kind == "nearby":
        return jsonify(places.nearby_search(data.get("location"), radius))
    raise FunctionError("Invalid search type", status=400)


@app.post("/functions/restaurant-search")
def fn_restaurant_search():
    data = body()
    return jsonify(places.restaurant_search(data.get("query"), data.get("location"),
                                            data.get("radius") or 10000, data.get("limit") or 20))


@app.post("/functions/restaurant-discovery")
def fn_restaurant_discovery():
    data = body()
    return jsonify(discovery.discover_restaurants(data.get("query"), data.get("location"),
                                                  data.get("limit") or 50))


@app.post("/functions/location-suggestions")
def fn_location_suggestions():
    data = body()
    return jsonify(places.location_suggestions(data.get("input"), data.get("limit") or 5))


@app.post("/functions/geocode")
def fn_geocode():
    data = body()
    return jsonify(geocode.geocode_address(data.get("address"), data.get("city")))


# ───────────────── Yelp ─────────────────
@app.post("/functions/yelp-restaurant-data")
def fn_yelp():
    data = body()
    action = data.pop("action", None)
    logger.info("Yelp action=%s", action)
    if action == "search":
        return jsonify(yelp.search_businesses(data))
    if action == "business_details":
        return jsonify(yelp.business_details(data.get("businessId")))
    if action == "reviews":
        return jsonify(yelp.business_reviews(data.get("businessId")))
    raise FunctionError(f"Unknown action: {action}", status=400)


# ───────────────── AI ─────────────────
@app.post("/functions/ai-cuisine-detector")
def fn_cuisine():
    data = body()
    kind = cuisine.detect_cuisine(data.get("name"), data.get("address"), data.get("types"))
    return jsonify({"cuisine": kind})


@app.post("/functions/perplexity-restaurant-info")
def fn_restaurant_info():
    data = body()
    return jsonify(assistant.restaurant_info(data.get("restaurantName"), data.get("address"), data.get("city"),
                                             data.get("infoType") or "current_info",
                                             data.get("additionalContext")))


@app.post("/functions/ai-chatbot")
def fn_chatbot():
    data = body()
    return jsonify(assistant.chat(data.get("messages"), data.get("context")))


# ───────────────── Records ─────────────────
def user_client():
    client = store.get_client()
    return client, store.current_user_id(client, request.headers.get("Authorization"))


@app.get("/api/trips")
def api_list_trips():
    client, uid = user_client()
    return jsonify({"trips": store.list_trips(client, uid)})


@app.post("/api/trips")
def api_create_trip():
    client, uid = user_client()
    return jsonify(store.create_trip(client, uid, body())), 201


@app.patch("/api/trips/<trip_id>")
def api_update_trip(trip_id):
    client, uid = user_client()
    return jsonify(store.update_trip(client, trip_id, uid, body()))


@app.delete("/api/trips/<trip_id>")
def api_delete_trip(trip_id):
    client, uid = user_client()
    store.delete_trip(client, trip_id, uid)
    return jsonify({"deleted": trip_id})


@app.get("/api/shared/trips/<trip_id>")
def api_shared_trip(trip_id):
    return jsonify(store.get_shared_trip(store.get_client(), trip_id))


@app.get("/api/trips/<trip_id>/ratings")
def api_list_ratings(trip_id):
    client, uid = user_client()
    return jsonify({"ratings": store.list_ratings(client, trip_id)})


@app.post("/api/trips/<trip_id>/ratings")
def api_add_rating(trip_id):
    client, uid = user_client()
    return jsonify(store.add_rating(client, uid, dict(body(), trip_id=trip_id))), 201


@app.post("/api/trips/<trip_id>/restaurants")
def api_add_restaurant(trip_id):
    client, uid = user_client()
    return jsonify(store.add_restaurant_to_trip(client, uid, trip_id, body())), 201


@app.patch("/api/ratings/<rating_id>")
def api_update_rating(rating_id):
    client, uid = user_client()
    return jsonify(store.update_rating(client, rating_id, uid, body()))


@app.delete("/api/ratings/<rating_id>")
def api_delete_rating(rating_id):
    client, uid = user_client()
    store.delete_rating(client, rating_id, uid)
    return jsonify({"deleted": rating_id})


@app.get("/api/itineraries")
def api_list_itineraries():
    client, uid = user_client()
    return jsonify({"itineraries": store.list_itineraries(client, uid)})


@app.post("/api/itineraries")
def api_save_itinerary():
    client, uid = user_client()
    data = body()
    saved = store.save_itinerary(client, uid, data)
    return jsonify(saved), 200 if data.get("id") else 201


@app.get("/api/itineraries/<itinerary_id>")
def api_get_itinerary(itinerary_id):
    client, uid = user_client()
    return jsonify(store.get_itinerary(client, itinerary_id, uid))


@app.delete("/api/itineraries/<itinerary_id>")
def api_delete_itinerary(itinerary_id):
    client, uid = user_client()
    store.delete_itinerary(client, itinerary_id, uid)
    return jsonify({"deleted": itinerary_id})


EXPORT_TYPES = {"ics": "text/calendar", "csv": "text/csv", "txt": "text/plain", "json": "application/json"}


@app.get("/api/itineraries/<itinerary_id>/export/<fmt>")
def api_export_itinerary(itinerary_id, fmt):
    if fmt not in EXPORT_TYPES:
        raise FunctionError(f"Unsupported export format: {fmt}", status=400)
    client, uid = user_client()
    itin = store.get_itinerary(client, itinerary_id, uid)
    if fmt == "ics":
        payload = export.itinerary_to_ics(itin)
    elif fmt == "csv":
        payload = export.itinerary_to_csv(itin)
    elif fmt == "txt":
        payload = export.itinerary_to_text(itin)
    else:
        payload = json.dumps(itin, ensure_ascii=False, indent=2)
    resp = make_response(payload)
    resp.headers["Content-Type"] = EXPORT_TYPES[fmt]
    resp.headers["Content-Disposition"] = f"attachment; filename={export.export_filename(itin.get('title'), fmt)}"
    return resp


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=config.PORT, debug=False)
