import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from leasewatch.models.host import Snapshot

logger = logging.getLogger(__name__)


def format_lease_expiry(expires: Optional[datetime], now: Optional[datetime] = None) -> str:
    if expires is None:
        return "Never expires"

    now = now or datetime.now(timezone.utc)
    remaining = expires - now
    if remaining.total_seconds() < 0:
        return "Expired"

    total = int(remaining.total_seconds())
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)

    if days > 0:
        return f"{days:02d}d, {hours:02d}h, {minutes:02d}m, {seconds:02d}s"
    if hours > 0:
        return f"{hours:02d}h, {minutes:02d}m, {seconds:02d}s"
    return f"{minutes:02d}m, {seconds:02d}s"


def snapshot_to_dict(snapshot: Snapshot, pool_size: Optional[int] = None) -> Dict:
    data = snapshot.model_dump(mode="json")
    for client, item in zip(snapshot.current_clients, data["current_clients"]):
        item["lease"]["expires_in"] = format_lease_expiry(client.lease.expires, snapshot.generated_at)

    return {
        "snapshot": {
            "type": "dhcp_clients",
            "created_at": snapshot.generated_at.isoformat(),
            "schema_version": "1.0",
            "summary": {
                "current_clients": len(snapshot.current_clients),
                "past_clients": len(snapshot.past_clients),
                # None: пул слишком большой (IPv6)
                "dhcp_pool_size": pool_size,
            },
        },
        "current_clients": data["current_clients"],
        "past_clients": data["past_clients"],
    }


def save_snapshot(snapshot: Snapshot, path: str | Path, pool_size: Optional[int] = None) -> Path:
    """
    Сохраняет snapshot в JSON.
    Запись через временный файл, чтобы читатель никогда не видел половину файла.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = path.with_name(path.name + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(snapshot_to_dict(snapshot, pool_size), f, ensure_ascii=False, indent=2)
    os.replace(tmp_path, path)

    logger.info("[SNAPSHOT] Saved %d/%d current/past DHCP clients to %s",
                len(snapshot.current_clients), len(snapshot.past_clients), path)
    return path
