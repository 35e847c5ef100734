"""
Medication catalog used to autocomplete prescriptions.

The catalog is optional: any problem downloading or reading it yields an
empty list and consultations can still be written by hand.
"""

import logging
import os
from typing import Any, List

import requests

logger = logging.getLogger(__name__)

TIMEOUT = float(os.getenv("MEDICATIONS_TIMEOUT", "10"))


def _names(payload: Any) -> List[str]:
    if isinstance(payload, dict):
        payload = payload.get("medications") or payload.get("medicamentos") or []
    if not isinstance(payload, list):
        raise ValueError("medication catalog must be a list")
    names = []
    for item in payload:
        if isinstance(item, dict):
            item = item.get("name") or item.get("nombre")
        if isinstance(item, str) and item.strip():
            names.append(item.strip().upper())
    return names


def fetch_medications(url: str, timeout: float = TIMEOUT) -> List[str]:
    if not url:
        return []
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
        content_type = resp.headers.get("Content-Type", "")
        if "json" in content_type or resp.text.lstrip().startswith(("[", "{")):
            names = _names(resp.json())
        else:
            names = _names(resp.text.splitlines())
    except Exception as e:
        logger.warning("Could not load medication catalog from %s: %s", url, str(e)[:80])
        return []
    return sorted(set(names))
