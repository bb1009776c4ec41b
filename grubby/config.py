import os
from dotenv import load_dotenv

load_dotenv()

AMADEUS_KEY = os.getenv("AMADEUS_API_KEY")
AMADEUS_SECRET = os.getenv("AMADEUS_API_SECRET")
AMADEUS_HOST = os.getenv("AMADEUS_HOST", "https://api.amadeus.com")

GOOGLE_PLACES_KEY = os.getenv("GOOGLE_PLACES_API_KEY")
MAPBOX_TOKEN = os.getenv("MAPBOX_TOKEN")
YELP_KEY = os.getenv("YELP_API_KEY")
FLIGHTAPI_KEY = os.getenv("FLIGHTAPI_KEY")
OPENAI_KEY = os.getenv("OPENAI_API_KEY")
PERPLEXITY_KEY = os.getenv("PERPLEXITY_API_KEY")

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", 7860))

DISCOVERY_MAX_WORKERS = int(os.getenv("DISCOVERY_MAX_WORKERS", 8))
# Google needs a moment before a next_page_token becomes valid
PAGE_TOKEN_DELAY = float(os.getenv("PAGE_TOKEN_DELAY", 2))

CORS_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


def provider_status():
    return {
        "amadeus": bool(AMADEUS_KEY and AMADEUS_SECRET),
        "google_places": bool(GOOGLE_PLACES_KEY),
        "mapbox": bool(MAPBOX_TOKEN),
        "yelp": bool(YELP_KEY),
        "flightapi": bool(FLIGHTAPI_KEY),
        "openai": bool(OPENAI_KEY),
        "perplexity": bool(PERPLEXITY_KEY),
        "supabase": bool(SUPABASE_URL and SUPABASE_SERVICE_KEY),
    }
