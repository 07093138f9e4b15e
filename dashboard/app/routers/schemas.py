import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dashboard.app.core.notifications import Notification
from dashboard.app.models import LoginStatus, ReservationStatus, TableStatus


class TableOut(BaseModel):
    id: str
    number: int
    name: str
    capacity: int
    effective_capacity: int
    status: TableStatus
    location: str
    linked_with: list[str]
    display_name: str
    size_class: str
    selected: bool


class TablesOut(BaseModel):
    link_mode: bool
    selection: list[str]
    selection_capacity: int
    tables: list[TableOut]


class LinkTablesIn(BaseModel):
    # defaults to the current link-mode selection
    table_ids: list[str] | None = None


class LinkTablesOut(BaseModel):
    table_ids: list[str]
    combined_capacity: int


class UnlinkOut(BaseModel):
    unlinked: list[str]


class ReservationOut(BaseModel):
    id: str
    guest_id: str | None
    guest_name: str
    guest_initials: str
    guest_email: str | None
    date: dt.date
    time: str
    end_time: str | None
    party_size: int
    table_id: str | None
    table_name: str
    status: ReservationStatus
    special_requests: str
    bill_amount: float | None
    awaiting_bill: bool


class ReservationCreateIn(BaseModel):
    guest_id: str | None = None
    guest_name: str = ""
    guest_email: str | None = None
    date: dt.date | None = None
    time: str = ""
    party_size: int = 0
    table_id: str | None = None
    special_requests: str = ""


class ReservationEditIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    guest_name: str | None = None
    guest_email: str | None = None
    date: dt.date | None = None
    time: str | None = None
    end_time: str | None = None
    party_size: int | None = Field(default=None, ge=1)
    table_id: str | None = None
    special_requests: str | None = None

    # omitted means unchanged; only email, end time and table may be cleared
    @field_validator("guest_name", "date", "time", "party_size", "special_requests")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class StatusIn(BaseModel):
    status: str


class BillIn(BaseModel):
    # raw user input, blank means 0
    amount: str | float | None = ""


class StatusOut(BaseModel):
    id: str
    status: ReservationStatus
    bill_amount: float | None
    awaiting_bill: bool


class CustomerOut(BaseModel):
    id: str
    name: str
    email: str | None = None
    phone: str | None = None


class TeamMemberIn(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    role: str = Field(min_length=1)
    email: str = Field(min_length=3, max_length=254)
    phone: str | None = None
    login_status: LoginStatus | None = None
    avatar: str | None = None


class TeamMemberUpdateIn(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    role: str | None = None
    email: str | None = Field(default=None, max_length=254)
    phone: str | None = None
    avatar: str | None = None


class LoginStatusIn(BaseModel):
    login_status: LoginStatus


class NotificationsOut(BaseModel):
    notifications: list[Notification]
