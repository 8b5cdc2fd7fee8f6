from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


@dataclass(frozen=True)
class Session:
    id: str
    name: str
    start_date: datetime
    price: int  # pence
    capacity: int
    enrolled: int = 0
    service_type: str = "after-school"
    location: str = ""
    day_of_week: int = 0  # 0-6, Sunday first
    start_time: str = ""  # "15:30"
    end_time: str = ""
    is_force_closed: bool = False
    is_active: bool = True
    updated_at: datetime | None = None

    @property
    def spots_left(self) -> int:
        return max(0, self.capacity - self.enrolled)

    @property
    def is_available(self) -> bool:
        return self.spots_left > 0 and not self.is_force_closed

    @property
    def day_name(self) -> str:
        if 0 <= self.day_of_week < len(DAY_NAMES):
            return DAY_NAMES[self.day_of_week]
        return "Unknown"
