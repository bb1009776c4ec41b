import logging
from typing import Optional

import requests

from grubby.errors import FunctionError

logger = logging.getLogger(__name__)


def safe_get(url, params=None, timeout=25, headers=None) -> Optional[requests.Response]:
    try:
        r = requests.get(url, params=params, timeout=timeout, headers=headers)
        r.raise_for_status()
        return r
    except Exception as e:
        logger.warning("GET %s failed: %s", url, e)
        return None


def safe_post(url, data=None, timeout=30, headers=None, json_body=None) -> Optional[requests.Response]:
    try:
        if json_body is not None:
            r = requests.post(url, json=json_body, timeout=timeout, headers=headers)
        else:
            r = requests.post(url, data=data, timeout=timeout, headers=headers)
        r.raise_for_status()
        return r
    except Exception as e:
        logger.warning("POST %s failed: %s", url, e)
        return None


def safe_json(url, params=None, timeout=25, headers=None):
    r = safe_get(url, params=params, timeout=timeout, headers=headers)
    if not r: return None
    try:
        return r.json()
    except ValueError:
        return None


def _check(r, label, status):
    if r.ok:
        return r.json()
    text = r.text[:500]
    logger.error("%s failed: %s %s", label, r.status_code, text)
    if r.status_code == 429:
        raise FunctionError(f"{label} rate limit exceeded", status=429, details=text)
    raise FunctionError(f"{label} error: {r.status_code}", status=status or r.status_code, details=text)


def get_json(url, params=None, headers=None, timeout=25, label="Upstream API", status=500):
    """GET and decode JSON, raising FunctionError on transport or HTTP failure.

    ``status`` is the code reported for non-429 upstream errors; pass ``None``
    to forward the upstream code as-is.
    """
    try:
        r = requests.get(url, params=params, headers=headers, timeout=timeout)
    except requests.Timeout:
        raise FunctionError("Request timeout", status=408)
    except requests.RequestException as e:
        raise FunctionError(f"{label} unreachable", status=502, details=str(e))
    return _check(r, label, status)


def post_json(url, data=None, json_body=None, headers=None, timeout=30, label="Upstream API", status=500):
    try:
        if json_body is not None:
            r = requests.post(url, json=json_body, headers=headers, timeout=timeout)
        else:
            r = requests.post(url, data=data, headers=headers, timeout=timeout)
    except requests.Timeout:
        raise FunctionError("Request timeout", status=408)
    except requests.RequestException as e:
        raise FunctionError(f"{label} unreachable", status=502, details=str(e))
    return _check(r, label, status)
