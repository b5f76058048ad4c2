"""Red packet status as seen by clients."""

from __future__ import annotations

import time
from typing import Optional

from ..domain.entities import RedPacket, RedPacketStatus


def red_packet_status(red_packet: RedPacket, now: Optional[int] = None) -> RedPacketStatus:
    """`fully_claimed` wins over `expired`, which wins over `active`."""
    return red_packet.status(int(time.time()) if now is None else now)

