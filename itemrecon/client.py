from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import fitz
import httpx

from .models import Config

LOGGER = logging.getLogger(__name__)

MAX_PDF_BYTES = 25 * 1024 * 1024
DEFAULT_CO_URL = "http://localhost:8000/v1/co/parse"
DEFAULT_FC_URL = "http://localhost:8000/v1/fc/parse"


class ParseServiceError(RuntimeError):
    pass


class InvalidDocumentError(ValueError):
    pass


@dataclass
class ServiceConfig:
    co_url: str
    fc_url: str
    co_profile: str
    fc_profile: str
    timeout: float = 120.0


def service_config(config: Config) -> ServiceConfig:
    endpoints = config.get("endpoints") or {}
    profiles = config.get("profiles") or {}
    service = config.get("service") or {}
    return ServiceConfig(
        co_url=os.getenv("ITEMRECON_CO_URL") or endpoints.get("co") or DEFAULT_CO_URL,
        fc_url=os.getenv("ITEMRECON_FC_URL") or endpoints.get("fc") or DEFAULT_FC_URL,
        co_profile=canonicalize_profile(profiles.get("co", "co_ace72")),
        fc_profile=canonicalize_profile(profiles.get("fc", "fc_marcopolo")),
        timeout=float(service.get("timeout", 120.0)),
    )


def canonicalize_profile(name: Optional[str]) -> str:
    if not name:
        return ""
    base = name.replace("\\", "/").split("/")[-1]
    for suffix in (".py", ".json"):
        if base.lower().endswith(suffix):
            return base[: -len(suffix)]
    return base


def validate_pdf(data: bytes, name: str = "document") -> None:
    if len(data) > MAX_PDF_BYTES:
        raise InvalidDocumentError(f"{name}: PDF too large (limit 25 MB)")
    if not data.startswith(b"%PDF"):
        raise InvalidDocumentError(f"{name}: not a PDF file")
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            pages = doc.page_count
    except Exception as exc:
        raise InvalidDocumentError(f"{name}: unreadable PDF ({exc})") from exc
    if not pages:
        raise InvalidDocumentError(f"{name}: PDF has no pages")
    LOGGER.debug("Validated %s: %d pages", name, pages)


def _decode(response: httpx.Response) -> Dict[str, Any]:
    if response.is_error:
        body = response.text.strip()
        raise ParseServiceError(f"HTTP {response.status_code}{f': {body}' if body else ''}")
    try:
        data = response.json()
    except json.JSONDecodeError:
        LOGGER.warning("Parse service returned non-JSON body from %s", response.request.url)
        return {}
    return data if isinstance(data, dict) else {}


class ParseClient:
    """Uploads CO/FC PDFs to the parse service and returns its JSON payload."""

    def __init__(self, settings: ServiceConfig, client: Optional[httpx.Client] = None) -> None:
        self.settings = settings
        self._client = client or httpx.Client(timeout=settings.timeout, trust_env=False)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ParseClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def parse_co(self, data: bytes, filename: str = "co.pdf", profile: Optional[str] = None) -> Dict[str, Any]:
        validate_pdf(data, filename)
        profile = canonicalize_profile(profile) or self.settings.co_profile
        params = {"profile": profile} if profile else None
        LOGGER.info("POST CO %s (%s, %d bytes, profile=%s)", self.settings.co_url, filename, len(data), profile)
        try:
            response = self._client.post(
                self.settings.co_url,
                params=params,
                files={"pdf": (filename, data, "application/pdf")},
            )
        except httpx.HTTPError as exc:
            raise ParseServiceError(f"CO request failed: {exc}") from exc
        return _decode(response)

    def parse_fc(self, data: bytes, filename: str = "fc.pdf", profile: Optional[str] = None) -> Dict[str, Any]:
        validate_pdf(data, filename)
        profile = canonicalize_profile(profile) or self.settings.fc_profile
        LOGGER.info("POST FC %s (%s, %d bytes, profile=%s)", self.settings.fc_url, filename, len(data), profile)
        try:
            response = self._client.post(
                self.settings.fc_url,
                data={"profile": profile},
                files={"pdf": (filename, data, "application/pdf")},
            )
        except httpx.HTTPError as exc:
            raise ParseServiceError(f"FC request failed: {exc}") from exc
        return _decode(response)