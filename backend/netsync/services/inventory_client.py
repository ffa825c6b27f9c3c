"""
Inventory source REST client (LibreNMS API v0).
Auth: X-Auth-Token header.
API paths: /devices, /resources/locations, /devices/{id}/ports, /resources/sensors,
/resources/fdb
Response format: {"status": "ok", "<collection>": [...]}
"""
import httpx
import logging
from typing import List, Optional

from netsync.config import settings
from netsync.schemas.inventory import (
    InventoryDevice, InventoryFdbEntry, InventoryLocation, InventoryPort, InventorySensor,
)
from netsync.services.errors import InventoryError

logger = logging.getLogger(__name__)

PORT_COLUMNS = "port_id,ifName,ifDescr,ifAlias,ifOperStatus,ifLastChange,ifIndex,ifType,ifPhysAddress"


class InventoryClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.INVENTORY_API_URL).rstrip("/")
        self.token = token if token is not None else settings.INVENTORY_API_TOKEN
        self.timeout = timeout or settings.INVENTORY_TIMEOUT
        self._transport = transport

    async def _get(self, path: str, params: dict = None) -> dict:
        headers = {"X-Auth-Token": self.token}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(f"{self.base_url}{path}", headers=headers, params=params)
        except httpx.HTTPError as e:
            raise InventoryError(f"Inventory request {path} failed: {e}") from e

        if not resp.is_success:
            logger.error(f"Inventory {path} returned HTTP {resp.status_code}: {resp.text[:200]}")
            raise InventoryError(
                f"Failed to fetch {path} from inventory: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        data = resp.json()
        return data if isinstance(data, dict) else {}

    async def get_devices(self) -> List[InventoryDevice]:
        data = await self._get("/devices")
        return [InventoryDevice.model_validate(d) for d in data.get("devices") or []]

    async def get_locations(self) -> List[InventoryLocation]:
        data = await self._get("/resources/locations")
        return [InventoryLocation.model_validate(loc) for loc in data.get("locations") or []]

    async def get_ports(self, device_id: int) -> List[InventoryPort]:
        data = await self._get(f"/devices/{device_id}/ports", params={"columns": PORT_COLUMNS})
        ports = []
        for raw in data.get("ports") or []:
            if raw.get("ifIndex") is None:
                continue
            ports.append(InventoryPort.model_validate(raw))
        return ports

    async def get_sensors(self) -> List[InventorySensor]:
        data = await self._get("/resources/sensors")
        return [InventorySensor.model_validate(s) for s in data.get("sensors") or []]

    async def get_fdb(self) -> List[InventoryFdbEntry]:
        data = await self._get("/resources/fdb")
        return [InventoryFdbEntry.model_validate(e) for e in data.get("ports_fdb") or []]
