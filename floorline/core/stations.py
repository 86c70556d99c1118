from __future__ import annotations

KITCHEN = "KITCHEN"
BAR = "BAR"

DESTINATIONS = (KITCHEN, BAR)

STATION_CHANNELS = {
    KITCHEN: "private-kitchen",
    BAR: "private-bar",
}
ADMIN_CHANNEL = "private-admin"


def normalize_destination(destination: str | None, *, default: str = KITCHEN) -> str:
    value = (destination or default).strip().upper()
    if value not in DESTINATIONS:
        raise ValueError("Invalid destination")
    return value


def station_channel(destination: str) -> str:
    return STATION_CHANNELS[normalize_destination(destination)]


def server_channel(user_id: int | str) -> str:
    return f"private-server-{user_id}"
