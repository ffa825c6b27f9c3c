"""
Interface enumeration.
Builds an ifIndex -> name map from IF-MIB: ifName (ifXTable) preferred,
ifDescr (ifTable) as fallback.
"""
import logging
from typing import Dict, List

from netsync.services.errors import SnmpError
from netsync.services.snmp_session import SnmpSession, VarBind, oid_suffix

logger = logging.getLogger(__name__)

OID_IF_NAME  = "1.3.6.1.2.1.31.1.1.1.1"
OID_IF_DESCR = "1.3.6.1.2.1.2.2.1.2"


def _as_text(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace").strip("\x00").strip()
    if value is None:
        return ""
    return str(value).strip()


def _index_map(varbinds: List[VarBind], base: str) -> Dict[int, str]:
    result: Dict[int, str] = {}
    for vb in varbinds:
        suffix = oid_suffix(vb.oid, base)
        if not suffix or not suffix.isdigit():
            continue
        text = _as_text(vb.value)
        if text:
            result[int(suffix)] = text
    return result


async def _walk_column(session: SnmpSession, oid: str) -> Dict[int, str]:
    try:
        return _index_map(await session.subtree(oid), oid)
    except SnmpError as e:
        logger.warning(f"Interface walk of {oid} failed on {session.ip}: {e}")
        return {}


async def enumerate_interfaces(session: SnmpSession) -> Dict[int, str]:
    """Return {ifIndex: name}; empty when the device does not answer."""
    names = await _walk_column(session, OID_IF_NAME)
    descrs = await _walk_column(session, OID_IF_DESCR)

    interfaces = dict(descrs)
    interfaces.update(names)
    logger.debug(f"Enumerated {len(interfaces)} interfaces on {session.ip}")
    return interfaces
