"""
Change notifications.
Formats node / interface status transitions into a text report and posts it
to the configured chat webhook.
"""
import httpx
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from netsync.config import settings
from netsync.schemas.sync import StatusChange

logger = logging.getLogger(__name__)


def format_change_message(
    node_changes: Sequence[StatusChange],
    interface_changes: Sequence[StatusChange],
    now: Optional[datetime] = None,
) -> str:
    now = now or datetime.now(timezone.utc)
    lines: List[str] = [
        "*Network Status Report*",
        f"*Time:* {now.strftime('%Y-%m-%d %H:%M:%S UTC')}",
        "-----------------------------------",
    ]

    if node_changes:
        lines.append("*Device status changes:*")
        for change in node_changes:
            icon = "✅" if change.current_status == "UP" else "❌"
            ip = f" ({change.ip_mgmt})" if change.ip_mgmt else ""
            lines.append(f"{icon} *{change.name}*{ip} is now *{change.current_status}*")
        lines.append("")

    if interface_changes:
        lines.append("*Interface status changes:*")
        for change in interface_changes:
            icon = "🟢" if change.current_status == "UP" else "🔴"
            descr = f" ({change.description})" if change.description else ""
            lines.append(
                f"{icon} *{change.name}*{descr} on _{change.node_name}_ is now *{change.current_status}*"
            )
        lines.append("")

    lines.append("_This message was generated automatically._")
    return "\n".join(lines)


async def send_change_notification(
    node_changes: Sequence[StatusChange],
    interface_changes: Sequence[StatusChange],
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """Post the report; True when a message was delivered."""
    if not node_changes and not interface_changes:
        logger.info("No status changes detected, no notification sent")
        return False
    if not settings.NOTIFY_WEBHOOK_URL:
        logger.info(
            f"Notification webhook not configured, dropping {len(node_changes)} node "
            f"and {len(interface_changes)} interface changes"
        )
        return False

    payload = {
        "phone": settings.NOTIFY_TARGET,
        "message": format_change_message(node_changes, interface_changes),
        "is_forwarded": False,
    }
    auth = None
    if settings.NOTIFY_USERNAME:
        auth = (settings.NOTIFY_USERNAME, settings.NOTIFY_PASSWORD)

    try:
        async with httpx.AsyncClient(timeout=10, auth=auth, transport=transport) as client:
            resp = await client.post(settings.NOTIFY_WEBHOOK_URL, json=payload)
            resp.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"Change notification failed: {e}")
        return False

    logger.info(f"Change notification sent ({len(node_changes)} nodes, {len(interface_changes)} interfaces)")
    return True
