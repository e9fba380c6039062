from typing import Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["owner", "walker", "admin"]
BookingStatus = Literal["Pending", "Accepted", "Declined", "Completed"]


class Pet(BaseModel):
    id: str
    name: str
    type: str
    notes: str = ""


class User(BaseModel):
    id: str
    name: str
    email: str
    password: str
    role: Role
    active: bool = True
    distance_km: Optional[float] = None
    availability: str = ""
    bio: str = ""
    phone: str = ""
    pets: list[Pet] = Field(default_factory=list)

    def public_fields(self) -> dict:
        return self.model_dump(exclude={"id", "password"})


class PublicUser(BaseModel):
    id: str
    name: str
    email: str
    role: Role
    active: bool = True
    distance_km: Optional[float] = None
    availability: str = ""
    bio: str = ""
    phone: str = ""
    pets: list[Pet] = Field(default_factory=list)


class Booking(BaseModel):
    id: str
    owner_id: str
    owner_name: str = ""
    walker_id: Optional[str] = None
    walker_name: str = ""
    service: str = "Dog Walk"
    date: str
    time: str
    status: BookingStatus = "Pending"


class Report(BaseModel):
    id: str
    booking_id: str
    owner_id: str
    walker_id: str
    walker_name: str = ""
    date: str
    time: str
    text: str


class LiveLocation(BaseModel):
    lat: float
    lng: float
    walker_id: str
    timestamp: int


class LatestWalkReport(BaseModel):
    text: str
    booking_id: str
    owner_id: str
    walker_id: str


class RegisterRequest(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""
    role: str = ""


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""
    role: str = ""


class LoginResponse(BaseModel):
    user: PublicUser
    redirect_to: str


class OwnerProfileRequest(BaseModel):
    name: str = ""
    phone: str = ""


class WalkerProfileRequest(BaseModel):
    name: str = ""
    availability: str = ""
    bio: str = ""


class PetCreateRequest(BaseModel):
    name: str = ""
    type: str = ""
    notes: str = ""


class BookingCreateRequest(BaseModel):
    service: str = ""
    date: str = ""
    time: str = ""


class ReportCreateRequest(BaseModel):
    text: str = ""


class UserActiveRequest(BaseModel):
    active: bool


class WalkerBookingsView(BaseModel):
    pending: list[Booking] = Field(default_factory=list)
    mine: list[Booking] = Field(default_factory=list)


class OwnerDashboard(BaseModel):
    user: PublicUser
    pets: list[Pet] = Field(default_factory=list)
    bookings: list[Booking] = Field(default_factory=list)
    walkers: list[PublicUser] = Field(default_factory=list)
    reports: list[Report] = Field(default_factory=list)
    live_location: Optional[LiveLocation] = None


class WalkerDashboard(BaseModel):
    user: PublicUser
    pending: list[Booking] = Field(default_factory=list)
    mine: list[Booking] = Field(default_factory=list)
    live_location: Optional[LiveLocation] = None


class AdminDashboard(BaseModel):
    users: list[PublicUser] = Field(default_factory=list)
    bookings: list[Booking] = Field(default_factory=list)
