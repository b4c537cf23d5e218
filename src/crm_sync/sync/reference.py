"""Reference data (areas, salesmen) used to populate filter choices."""

import asyncio
import logging
from typing import Any

from crm_sync.clients.base import Transport
from crm_sync.data import get_collection
from crm_sync.errors import TransportError
from crm_sync.models.resources import Area, PageResponse, Resource, Salesman
from crm_sync.models.state import ErrorInfo
from crm_sync.settings import SyncSettings
from crm_sync.sync.debounce import FILTER_DEBOUNCE_DELAY, CallLater, Debouncer

logger = logging.getLogger(__name__)


def filter_areas(areas: list[Area], term: str) -> list[Area]:
    """Active areas whose name, city or state contains ``term`` (case-insensitive)."""
    active = [area for area in areas if area.is_active]
    if not term:
        return active
    needle = term.lower()
    return [
        area
        for area in active
        if needle in area.name.lower()
        or needle in area.city.lower()
        or needle in area.state.lower()
    ]


class ReferenceData:
    """Loads full reference lists once and filters them locally.

    The area picker's search box goes through a shorter debounce than the
    main listing search, and is matched client-side.

    Example:
        reference = ReferenceData(transport)
        await reference.load()
        reference.area_search.submit("pune")
    """

    def __init__(
        self,
        transport: Transport,
        limit: int = 1000,
        filter_delay: float = FILTER_DEBOUNCE_DELAY,
        call_later: CallLater | None = None,
    ):
        self.transport = transport
        self.limit = limit
        self.areas: list[Area] = []
        self.salesmen: list[Salesman] = []
        self.salesman_area: Any = None
        self.error: ErrorInfo | None = None
        self._area_term = ""
        self.area_search = Debouncer(filter_delay, self._set_area_term, call_later=call_later)

    @classmethod
    def from_settings(
        cls,
        transport: Transport,
        settings: SyncSettings,
        call_later: CallLater | None = None,
    ) -> "ReferenceData":
        return cls(
            transport,
            limit=settings.reference_limit,
            filter_delay=settings.filter_debounce,
            call_later=call_later,
        )

    async def _fetch_all(self, name: str, params: dict[str, Any]) -> list[Resource]:
        collection = get_collection(name)
        try:
            payload = await self.transport.get(collection.path, {"limit": self.limit, **params})
        except TransportError as e:
            self.error = ErrorInfo.from_exception(e)
            logger.warning(f"Failed to load {name}: {e.message}")
            return []

        if isinstance(payload, list):
            payload = {"items": payload}
        page = PageResponse.from_payload(payload or {}, collection.items_key)
        return [collection.parse_item(item) for item in page.items]

    async def load_areas(self) -> list[Area]:
        self.areas = await self._fetch_all("areas", {"isActive": "true"})
        return self.areas

    async def load_salesmen(self) -> list[Salesman]:
        self.salesmen = await self._fetch_all("users", {"role": "salesman"})
        return self.salesmen

    async def load(self):
        """Load areas and salesmen concurrently."""
        self.error = None
        await asyncio.gather(self.load_areas(), self.load_salesmen())
        logger.info(f"Loaded {len(self.areas)} areas and {len(self.salesmen)} salesmen")

    async def salesmen_by_city(self, city: str) -> list[Salesman]:
        """Fetch salesmen working in ``city``."""
        try:
            payload = await self.transport.get("clients/salesmen/by-city", {"city": city})
        except TransportError as e:
            self.error = ErrorInfo.from_exception(e)
            logger.warning(f"Failed to fetch salesmen for {city}: {e.message}")
            return []
        return [Salesman.model_validate(item) for item in payload or []]

    async def areas_for_salesman(self) -> list[Area]:
        """Fetch the areas in the signed-in salesman's city.

        The salesman's own area, when the API reports one, is kept in
        :attr:`salesman_area`.
        """
        try:
            payload = await self.transport.get("clients/salesman/areas")
        except TransportError as e:
            self.error = ErrorInfo.from_exception(e)
            logger.warning(f"Failed to fetch salesman areas: {e.message}")
            return []

        payload = payload or {}
        self.salesman_area = payload.get("salesmanArea")
        return [Area.model_validate(item) for item in payload.get("areas") or []]

    def _set_area_term(self, term: str):
        self._area_term = term

    @property
    def area_term(self) -> str:
        return self._area_term

    def filtered_areas(self) -> list[Area]:
        """Areas matching the committed area search."""
        return filter_areas(self.areas, self._area_term)

    def close(self):
        self.area_search.cancel()
