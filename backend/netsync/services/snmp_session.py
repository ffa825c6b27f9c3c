"""
SNMP session wrapper.
One SnmpSession is one conversation with one device: it owns a pysnmp
SnmpEngine (UDP socket + retransmission timers) and must be closed on every
exit path. GET / WALK / SUBTREE / TABLE return VarBind records holding plain
Python values (int, bytes, str).
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, List, Optional, Sequence, TypeVar

from pyasn1.type import univ
from pysnmp.error import PySnmpError
from pysnmp.hlapi.v3arch.asyncio import (
    get_cmd, walk_cmd, bulk_walk_cmd, SnmpEngine, CommunityData,
    UdpTransportTarget, ContextData, ObjectType, ObjectIdentity,
)
from pysnmp.proto.rfc1905 import NoSuchObject, NoSuchInstance, EndOfMibView

from netsync.config import settings
from netsync.services.errors import SnmpTransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_SUCH_OBJECT = "noSuchObject"
NO_SUCH_INSTANCE = "noSuchInstance"
END_OF_MIB_VIEW = "endOfMibView"
ERROR_TYPES = frozenset({NO_SUCH_OBJECT, NO_SUCH_INSTANCE, END_OF_MIB_VIEW})

_BULK_MAX_REPETITIONS = 25


@dataclass(frozen=True)
class VarBind:
    oid: str
    type: str
    value: Any

    @property
    def is_error(self) -> bool:
        return self.type in ERROR_TYPES


def _decode(oid, value) -> VarBind:
    oid_str = str(oid)
    if isinstance(value, NoSuchObject):
        return VarBind(oid_str, NO_SUCH_OBJECT, None)
    if isinstance(value, NoSuchInstance):
        return VarBind(oid_str, NO_SUCH_INSTANCE, None)
    if isinstance(value, EndOfMibView):
        return VarBind(oid_str, END_OF_MIB_VIEW, None)

    type_name = value.__class__.__name__
    if isinstance(value, univ.Integer):
        return VarBind(oid_str, type_name, int(value))
    if type_name == "IpAddress":
        return VarBind(oid_str, type_name, value.prettyPrint())
    if isinstance(value, univ.OctetString):
        return VarBind(oid_str, type_name, bytes(value.asOctets()))
    if isinstance(value, univ.ObjectIdentifier):
        return VarBind(oid_str, type_name, str(value))
    return VarBind(oid_str, type_name, value.prettyPrint())


def oid_suffix(oid: str, base: str) -> Optional[str]:
    """Index part of `oid` below `base`, or None when outside the subtree."""
    prefix = base.rstrip(".") + "."
    if not oid.startswith(prefix):
        return None
    return oid[len(prefix):]


class SnmpSession:
    def __init__(
        self,
        ip: str,
        community: str,
        *,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        version: Optional[str] = None,
        port: Optional[int] = None,
    ):
        self.ip = ip
        self.community = community
        self.timeout = settings.SNMP_TIMEOUT if timeout is None else timeout
        self.retries = settings.SNMP_RETRIES if retries is None else retries
        self.version = version or settings.SNMP_VERSION
        self.port = port or settings.SNMP_PORT
        self._engine = SnmpEngine()
        self._auth = CommunityData(community, mpModel=0 if self.version == "1" else 1)
        self._transport = None
        self._closed = False

    async def __aenter__(self) -> "SnmpSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    async def _target(self):
        if self._transport is None:
            try:
                self._transport = await UdpTransportTarget.create(
                    (self.ip, self.port), timeout=self.timeout, retries=self.retries,
                )
            except PySnmpError as e:
                raise SnmpTransportError(self.ip, str(e)) from e
        return self._transport

    async def get(self, oids: Sequence[str]) -> List[VarBind]:
        """Batched GET; one request for all OIDs, results in request order."""
        if not oids:
            return []
        transport = await self._target()
        try:
            error_indication, error_status, error_index, var_binds = await get_cmd(
                self._engine, self._auth, transport, ContextData(),
                *[ObjectType(ObjectIdentity(oid)) for oid in oids],
                lookupMib=False,
            )
        except PySnmpError as e:
            raise SnmpTransportError(self.ip, str(e)) from e
        if error_indication:
            raise SnmpTransportError(self.ip, str(error_indication))
        if error_status:
            at = oids[int(error_index) - 1] if error_index else "?"
            raise SnmpTransportError(self.ip, f"{error_status.prettyPrint()} at {at}")
        return [_decode(name, value) for name, value in var_binds]

    async def walk(self, oid: str) -> List[VarBind]:
        """All varbinds below `oid` (GETBULK on v2c, GETNEXT on v1)."""
        transport = await self._target()
        results: List[VarBind] = []
        if self.version == "1":
            walker = walk_cmd(
                self._engine, self._auth, transport, ContextData(),
                ObjectType(ObjectIdentity(oid)),
                lexicographicMode=False, lookupMib=False,
            )
        else:
            walker = bulk_walk_cmd(
                self._engine, self._auth, transport, ContextData(),
                0, _BULK_MAX_REPETITIONS,
                ObjectType(ObjectIdentity(oid)),
                lexicographicMode=False, lookupMib=False,
            )
        try:
            async for error_indication, error_status, error_index, var_binds in walker:
                if error_indication:
                    raise SnmpTransportError(self.ip, str(error_indication))
                if error_status:
                    raise SnmpTransportError(self.ip, f"{error_status.prettyPrint()} walking {oid}")
                for name, value in var_binds:
                    vb = _decode(name, value)
                    if vb.type == END_OF_MIB_VIEW or oid_suffix(vb.oid, oid) is None:
                        return results
                    results.append(vb)
        except PySnmpError as e:
            raise SnmpTransportError(self.ip, str(e)) from e
        return results

    async def subtree(self, oid: str) -> List[VarBind]:
        """Like walk() but drops protocol-error varbinds."""
        return [vb for vb in await self.walk(oid) if not vb.is_error]

    async def table(self, oid: str) -> Dict[str, Dict[int, VarBind]]:
        """Walk a conceptual table and reshape to {row index: {column: varbind}}.

        `oid` is the table OID; rows live under `<oid>.1.<column>.<index>`.
        """
        rows: Dict[str, Dict[int, VarBind]] = {}
        entry = oid.rstrip(".") + ".1"
        for vb in await self.subtree(entry):
            suffix = oid_suffix(vb.oid, entry)
            if not suffix or "." not in suffix:
                continue
            column, index = suffix.split(".", 1)
            try:
                rows.setdefault(index, {})[int(column)] = vb
            except ValueError:
                continue
        return rows

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._engine.close_dispatcher()
        except Exception as e:
            logger.debug(f"Error closing SNMP engine for {self.ip}: {e}")


def validate_timeout(timeout: float, minimum: float = 1.0, maximum: float = 30.0) -> float:
    """Clamp a timeout to sane bounds."""
    return min(max(timeout, minimum), maximum)


async def with_deadline(awaitable: Awaitable[T], timeout: float, *, default: T = None, label: str = "") -> T:
    """
    Race `awaitable` against a wall-clock deadline.
    On expiry the awaitable is cancelled (its sessions close on the way out)
    and `default` is returned. Errors raised by the awaitable propagate.
    """
    loop = asyncio.get_running_loop()
    started = loop.time()
    try:
        result = await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError:
        logger.warning(f"[SNMP] Timeout after {timeout:.1f}s for {label}")
        return default
    logger.debug(f"[SNMP] {label} completed in {loop.time() - started:.2f}s")
    return result
