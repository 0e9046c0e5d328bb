"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, today_utc, to_utc, as_date, start_of_day, end_of_day, parse_iso
from utils.actor_context import (
    SYSTEM_ACTOR_ID,
    get_current_actor_id,
    peek_current_actor_id,
    set_current_actor_id,
    clear_current_actor_id,
    actor_context,
)
