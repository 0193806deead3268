"""REST backend collaborator: city prices, geo names, extras, commission and jobs.

Every failure is converted to ``LookupUnavailable`` here so that nothing
above this module sees an httpx exception.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from shipment_pricing.core.config import settings
from shipment_pricing.core.errors import LookupUnavailable
from shipment_pricing.core.metrics import track_collaborator

logger = logging.getLogger(__name__)


def pick_message(payload: Any, fallback: str) -> str:
    if isinstance(payload, dict):
        for key in ("message", "detail", "title"):
            value = payload.get(key)
            if value and isinstance(value, str):
                return value
    return fallback


def collect_errors(payload: Any) -> str:
    """Flatten the backend's validation error shapes into one message."""
    if not isinstance(payload, dict):
        return ""
    messages: List[str] = []
    if payload.get("message"):
        messages.append(str(payload["message"]))
    data = payload.get("data")
    if isinstance(data, dict) and data.get("message"):
        messages.append(str(data["message"]))

    errors = payload.get("errors") or payload.get("error") or payload.get("detail")
    if isinstance(errors, list):
        for err in errors:
            if isinstance(err, str):
                messages.append(err)
            elif isinstance(err, dict):
                loc = err.get("loc")
                loc = ".".join(str(part) for part in loc) if isinstance(loc, list) else str(loc or "")
                msg = str(err.get("msg") or err.get("message") or err.get("detail") or "")
                if loc and msg:
                    messages.append(f"{loc}: {msg}")
                elif msg:
                    messages.append(msg)
    elif isinstance(errors, dict):
        for field, value in errors.items():
            if isinstance(value, list):
                messages.extend(f"{field}: {item}" for item in value)
            elif isinstance(value, str):
                messages.append(f"{field}: {value}")
    return " | ".join(messages)


def unwrap_list(payload: Any) -> List[dict]:
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        items = payload["data"]
    elif isinstance(payload, list):
        items = payload
    else:
        return []
    return [item for item in items if isinstance(item, dict)]


def unwrap_names(payload: Any) -> Dict[int, str]:
    names: Dict[int, str] = {}
    for item in unwrap_list(payload):
        try:
            item_id = int(item.get("id"))
        except (TypeError, ValueError):
            continue
        name = str(item.get("name") or "")
        if name:
            names[item_id] = name
    return names


class BackendClient:

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        self._client = client
        self._token = token
        self._base_url = (base_url or settings.BACKEND_BASE_URL).rstrip("/")

    @property
    def token(self) -> Optional[str]:
        return self._token

    def with_token(self, token: Optional[str]) -> "BackendClient":
        return BackendClient(self._client, token=token, base_url=self._base_url)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(self, resource: str, method: str, path: str, **kwargs) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.TimeoutException as e:
            raise LookupUnavailable(resource, f"{resource} request timed out") from e
        except httpx.HTTPError as e:
            raise LookupUnavailable(resource, f"{resource} request failed: {e}") from e

        try:
            payload = response.json() if response.content else None
        except ValueError:
            payload = response.text

        if not response.is_success or (isinstance(payload, dict) and payload.get("success") is False):
            detail = collect_errors(payload) if resource == "jobs" else ""
            message = detail or pick_message(payload, f"HTTP {response.status_code}")
            logger.warning(f"Backend {method} {path} failed: {message}")
            raise LookupUnavailable(resource, message)
        return payload

    async def _get(self, resource: str, path: str, params: Optional[dict] = None) -> Any:
        return await self._request(resource, "GET", path, params=params)

    @track_collaborator("rates")
    async def fetch_city_prices(self) -> List[dict]:
        return unwrap_list(await self._get("rates", "/admin/city-prices"))

    @track_collaborator("geo")
    async def fetch_state_names(self, country_id: int) -> Dict[int, str]:
        payload = await self._get(
            "geo",
            "/geo/states",
            params={"country_id": country_id, "limit": settings.GEO_STATES_LIMIT, "offset": 0},
        )
        return unwrap_names(payload)

    @track_collaborator("geo")
    async def fetch_city_names(self, state_id: int) -> Dict[int, str]:
        payload = await self._get(
            "geo",
            "/geo/cities",
            params={"state_id": state_id, "limit": settings.GEO_CITIES_LIMIT, "offset": 0},
        )
        return unwrap_names(payload)

    @track_collaborator("extras")
    async def fetch_extra_services(self) -> List[dict]:
        return unwrap_list(await self._get("extras", "/admin/extra-services"))

    @track_collaborator("commission")
    async def fetch_commission(self) -> dict:
        payload = await self._get("commission", "/admin/users/commission/")
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise LookupUnavailable("commission", "Commission information was not found")
        return data

    @track_collaborator("jobs")
    async def create_job(self, submission: dict) -> dict:
        payload = await self._request("jobs", "POST", "/corporate/jobs", json=submission)
        return payload if isinstance(payload, dict) else {}
