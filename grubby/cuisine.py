import re
import json
import logging
from typing import List, Optional

from openai import OpenAI

from grubby import config
from grubby.errors import FunctionError

logger = logging.getLogger(__name__)

CUISINE_MODEL = "gpt-4o-mini"

PLACE_TYPE_CUISINE = {
    "italian_restaurant": "Italian", "chinese_restaurant": "Chinese", "japanese_restaurant": "Japanese",
    "mexican_restaurant": "Mexican", "french_restaurant": "French", "indian_restaurant": "Indian",
    "thai_restaurant": "Thai", "american_restaurant": "American", "mediterranean_restaurant": "Mediterranean",
    "greek_restaurant": "Greek", "korean_restaurant": "Korean", "vietnamese_restaurant": "Vietnamese",
    "spanish_restaurant": "Spanish", "turkish_restaurant": "Turkish", "lebanese_restaurant": "Lebanese",
    "steakhouse": "Steakhouse", "seafood_restaurant": "Seafood", "vegetarian_restaurant": "Vegetarian",
    "pizza_restaurant": "Pizza", "bakery": "Bakery", "cafe": "Cafe", "fast_food_restaurant": "Fast Food",
    "sandwich_shop": "Sandwiches", "sushi_restaurant": "Sushi", "barbecue_restaurant": "BBQ",
}

# checked in order; first hit wins
NAME_HINTS = [
    (("pizza",), "Pizza"), (("sushi",), "Sushi"), (("taco", "mexican"), "Mexican"),
    (("italian",), "Italian"), (("chinese",), "Chinese"), (("thai",), "Thai"), (("indian",), "Indian"),
    (("french",), "French"), (("mediterranean",), "Mediterranean"), (("steakhouse", "steak"), "Steakhouse"),
    (("cafe", "coffee"), "Cafe"),
]

NAME_PATTERNS = [
    (("sushi", "ramen", "hibachi", "tempura", "yakitori", "izakaya"), "Japanese"),
    (("pizza", "pizzeria", "ristorante", "trattoria", "osteria"), "Italian"),
    (("taco", "burrito", "cantina", "taqueria", "mexican"), "Mexican"),
    (("bistro", "brasserie", "cafe", "creperie"), "French"),
    (("dim sum", "wok", "noodle", "szechuan", "hunan"), "Chinese"),
    (("curry", "tandoor", "biryani", "masala"), "Indian"),
    (("pho", "vietnamese"), "Vietnamese"),
    (("bbq", "steakhouse", "grill", "smokehouse"), "American"),
    (("thai", "pad"), "Thai"),
    (("korean", "bulgogi", "kimchi"), "Korean"),
    (("mediterranean", "gyro", "kebab"), "Mediterranean"),
    (("greek", "souvlaki"), "Greek"),
    (("tapas", "paella"), "Spanish"),
    (("pub", "tavern", "alehouse"), "American Pub"),
]

GENERIC = {"restaurant", "food", "bar"}

SYSTEM_PROMPT = ("You are a cuisine classification expert with deep knowledge of global food cultures. "
                 "Analyze restaurant information to determine the most accurate and specific cuisine type. "
                 "Always respond with valid JSON only.")


def map_place_type_to_cuisine(types: List[str], name: str) -> str:
    for t in types or []:
        if t in PLACE_TYPE_CUISINE:
            return PLACE_TYPE_CUISINE[t]
    lower = (name or "").lower()
    for words, cuisine in NAME_HINTS:
        if any(w in lower for w in words):
            return cuisine
    return "Restaurant"


def cuisine_from_name(name: str) -> str:
    lower = (name or "").lower()
    for words, cuisine in NAME_PATTERNS:
        if any(w in lower for w in words):
            return cuisine
    return "International"


def parse_cuisine_reply(text: str) -> Optional[str]:
    """Pull ``cuisine`` out of a model reply; None when generic or missing.

    Raises ValueError when no JSON object can be decoded.
    """
    s = (text or "").strip()
    m = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", s)
    if m: s = m.group(1).strip()
    m = re.search(r"\{[^}]*\}", s)
    if m: s = m.group(0)
    cuisine = (json.loads(s).get("cuisine") or "").strip()
    if not cuisine or cuisine.lower() in GENERIC:
        return None
    return cuisine


def build_prompt(name, address=None, types=None):
    return f"""Analyze this restaurant and determine its specific cuisine type based on the name and location details.

Restaurant Details:
- Name: "{name}"
- Address: "{address or 'Not provided'}"
- Google Places Types: {', '.join(types) if types else 'Not provided'}

Instructions:
1. Determine the most specific and accurate cuisine type for this restaurant
2. Use specific cuisine categories like: Italian, French, Japanese, Chinese, Mexican, Indian, Thai, Vietnamese, Korean, Mediterranean, Greek, Lebanese, Spanish, Peruvian, Ethiopian, etc.
3. For fusion restaurants, specify the fusion type (e.g., "Asian Fusion")
4. For bars/pubs with food, determine their food style (e.g., "Gastropub")
5. NEVER use generic terms like "Restaurant", "Food", "Bar"
6. If you cannot determine the specific cuisine, use "International"

Respond with a single JSON object in this exact format:
{{"cuisine": "Italian"}}"""


def detect_cuisine(name, address=None, types=None) -> str:
    if not name:
        raise FunctionError("Restaurant name is required", status=400)
    logger.info("Detecting cuisine for: %s at %s", name, address or "unknown address")
    if not config.OPENAI_KEY:
        return cuisine_from_name(name)
    try:
        client = OpenAI(api_key=config.OPENAI_KEY)
        resp = client.chat.completions.create(
            model=CUISINE_MODEL,
            messages=[{"role": "system", "content": SYSTEM_PROMPT},
                      {"role": "user", "content": build_prompt(name, address, types)}],
            temperature=0.1, max_tokens=50,
        )
        raw = resp.choices[0].message.content
        logger.debug("Raw cuisine reply: %s", raw)
    except Exception as e:
        logger.error("AI cuisine detection failed for %s: %s", name, e)
        return cuisine_from_name(name)
    try:
        cuisine = parse_cuisine_reply(raw)
    except ValueError:
        logger.warning("Unparseable cuisine reply for %s: %r", name, raw)
        return cuisine_from_name(name)
    return cuisine or "International"
