import re
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Optional
from urllib.parse import urlparse

from grubby import config, net
from grubby.errors import FunctionError, require

logger = logging.getLogger(__name__)

YELP_HOST = "https://api.yelp.com/v3"
BROWSER_UA = ("Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
              "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36")

MENU_PATTERNS = [
    re.compile(r'<a[^>]*href="([^"]*)"[^>]*>.*?[Mm]enu.*?</a>', re.S),
    re.compile(r'<a[^>]*class="[^"]*menu[^"]*"[^>]*href="([^"]*)"', re.S),
    re.compile(r'<a[^>]*href="(https?://[^"]*)"[^>]*>.*?[Ww]ebsite.*?</a>', re.S),
    re.compile(r'<a[^>]*href="([^"]*)"[^>]*>.*?[Oo]rder.*?[Oo]nline.*?</a>', re.S),
]
WEBSITE_PATTERN = re.compile(r'<a[^>]*href="(https?://(?!.*yelp\.com)[^"]*)"[^>]*>.*?[Ww]ebsite.*?</a>', re.S)


def _headers():
    return {"Authorization": f"Bearer {require(config.YELP_KEY, 'Yelp API key')}",
            "Content-Type": "application/json"}


def _valid(url):
    p = urlparse(url)
    return bool(p.scheme in ("http", "https") and p.netloc)


def _absolute(url):
    if url.startswith("//"): return "https:" + url
    if url.startswith("/"): return "https://www.yelp.com" + url
    return url


def extract_menu_url(html: str) -> Optional[str]:
    for pattern in MENU_PATTERNS:
        for m in pattern.finditer(html or ""):
            url = _absolute(m.group(1))
            if "yelp.com" in url:
                continue
            if _valid(url):
                return url
    m = WEBSITE_PATTERN.search(html or "")
    if m and _valid(m.group(1)):
        return m.group(1)
    return None


def fetch_menu_url(business_url) -> Optional[str]:
    if not business_url: return None
    r = net.safe_get(business_url, headers={"User-Agent": BROWSER_UA}, timeout=15)
    if not r: return None
    return extract_menu_url(r.text)


def search_params(params: Dict) -> Dict:
    out = {}
    for k in ("term", "location", "categories", "sort_by"):
        if params.get(k): out[k] = params[k]
    for k in ("latitude", "longitude"):
        if params.get(k) is not None: out[k] = params[k]
    if params.get("radius"): out["radius"] = min(int(params["radius"]), 40000)
    if params.get("limit"): out["limit"] = min(int(params["limit"]), 50)
    out.setdefault("categories", "restaurants")
    return out


def search_businesses(params: Dict, with_menus=True) -> Dict:
    query = search_params(params)
    logger.info("Yelp search params: %s", query)
    data = net.get_json(f"{YELP_HOST}/businesses/search", params=query, headers=_headers(),
                        timeout=20, label="Yelp API")
    businesses = data.get("businesses") or []
    logger.info("Found %d businesses from Yelp", len(businesses))
    if with_menus and businesses:
        with ThreadPoolExecutor(max_workers=min(8, len(businesses))) as pool:
            menus = list(pool.map(lambda b: fetch_menu_url(b.get("url")), businesses))
        businesses = [dict(b, menu_url=m) for b, m in zip(businesses, menus)]
    return {"businesses": businesses, "total": data.get("total") or 0, "region": data.get("region")}


def business_details(business_id):
    if not business_id:
        raise FunctionError("businessId is required", status=400)
    return net.get_json(f"{YELP_HOST}/businesses/{business_id}", headers=_headers(),
                        timeout=20, label="Yelp business details API")


def business_reviews(business_id):
    if not business_id:
        raise FunctionError("businessId is required", status=400)
    data = net.get_json(f"{YELP_HOST}/businesses/{business_id}/reviews", headers=_headers(),
                        timeout=20, label="Yelp reviews API")
    return {"reviews": data.get("reviews") or [], "total": data.get("total") or 0,
            "possible_languages": data.get("possible_languages") or []}


NAME_STOPWORDS = {"the", "a", "an", "and", "of", "on", "at", "s", "restaurant", "cafe", "bar", "grill", "kitchen"}


def _norm(name):
    return set(re.sub(r"[^a-z0-9 ]", " ", (name or "").lower()).split()) - NAME_STOPWORDS


def match_business(name, lat=None, lng=None) -> Optional[Dict]:
    """Best-effort Yelp match for a restaurant found elsewhere."""
    if not (config.YELP_KEY and name and lat and lng): return None
    params = {"term": name, "latitude": lat, "longitude": lng, "limit": 3,
              "categories": "restaurants", "radius": 1000}
    data = net.safe_json(f"{YELP_HOST}/businesses/search", params, timeout=15, headers=_headers())
    wanted = _norm(name)
    for b in (data or {}).get("businesses") or []:
        if wanted & _norm(b.get("name")):
            return b
    return None
