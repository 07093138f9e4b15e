import datetime as dt
from typing import Literal

from pydantic import BaseModel, Field


TableStatus = Literal["empty", "occupied", "booked"]
ReservationStatus = Literal["pending", "confirmed", "seated", "completed", "cancelled"]
LoginStatus = Literal["active", "inactive", "deactivated"]

RESERVATION_STATUSES: tuple[str, ...] = ("pending", "confirmed", "seated", "completed", "cancelled")
# Statuses the transition commands can request; "seated" is only set externally
TRANSITION_TARGETS: tuple[str, ...] = ("pending", "confirmed", "completed", "cancelled")


class Table(BaseModel):
    id: str
    number: int = Field(ge=1)
    capacity: int = Field(ge=1)
    status: TableStatus = "empty"
    name: str = ""
    location: str = ""
    linked_with: set[str] | None = None

    @property
    def is_linked(self) -> bool:
        return bool(self.linked_with)

    @property
    def label(self) -> str:
        return self.name or f"Table {self.number}"


class Reservation(BaseModel):
    id: str
    guest_id: str | None = None
    guest_name: str = ""
    guest_email: str | None = None
    date: dt.date
    time: str = ""
    end_time: str | None = None
    party_size: int = 0
    # Always a table id; display numbers are resolved at the view boundary
    table_id: str | None = None
    status: ReservationStatus = "pending"
    special_requests: str = ""
    bill_amount: float | None = Field(default=None, ge=0)

    @property
    def guest_initials(self) -> str:
        return initials(self.guest_name)


class ReservationDraft(BaseModel):
    guest_id: str | None = None
    guest_name: str = ""
    guest_email: str | None = None
    date: dt.date | None = None
    time: str = ""
    party_size: int = 0
    table_id: str | None = None
    special_requests: str = ""


class Customer(BaseModel):
    id: str
    name: str
    email: str | None = None
    phone: str | None = None


class TeamMember(BaseModel):
    id: str
    name: str
    role: str
    email: str
    phone: str | None = None
    login_status: LoginStatus = "active"
    last_login: str | None = None
    avatar: str | None = None

    @property
    def initials(self) -> str:
        return initials(self.name)


class TeamStats(BaseModel):
    total_members: int = 0
    active_members: int = 0
    inactive_members: int = 0
    deactivated_members: int = 0
    role_distribution: dict[str, int] = Field(default_factory=dict)


def initials(name: str) -> str:
    return "".join(part[0] for part in name.split() if part).upper()
