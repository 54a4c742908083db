from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

ORGANIZER_ROLE = "ROLE_ORGANIZER"

EVENT_CATEGORIES = (
    "Academic",
    "Arts & Culture",
    "Career & Networking",
    "Community Service",
    "Health & Wellness",
    "Social",
    "Sports & Recreation",
    "Workshops & Training",
    "Other",
)


# Jackson trims trailing zeros from fractional seconds ("14:30:00.12")
_FRACTION = re.compile(r"\.(\d+)")


def parse_dt(value: Any) -> Optional[datetime]:
    # Backend sends LocalDateTime as "2024-07-28T14:30:00"
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        value = _FRACTION.sub(lambda m: "." + m.group(1).ljust(6, "0")[:6], value.replace("Z", "+00:00"), count=1)
        return datetime.fromisoformat(value)
    raise ValueError(f"Invalid datetime value: {value!r}")


@dataclass(frozen=True)
class UserSession:
    """Identity of the logged-in user as reported by the backend."""

    user_id: int
    username: str
    email: str
    roles: Tuple[str, ...] = ()

    @property
    def is_organizer(self) -> bool:
        return ORGANIZER_ROLE in self.roles

    @property
    def role(self) -> str:
        return "organizer" if self.is_organizer else "participant"

    @property
    def display_name(self) -> str:
        return self.username or self.email

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "UserSession":
        """Build from UserInfoResponse / JwtResponse; token fields are ignored."""
        if not isinstance(data, dict):
            raise ValueError("user info must be an object")
        raw_id = data.get("id", data.get("userId"))
        if raw_id is None or not data.get("username"):
            raise ValueError("user info is missing identity fields")
        roles = data.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]
        return cls(
            user_id=int(raw_id),
            username=str(data["username"]),
            email=str(data.get("email") or ""),
            roles=tuple(str(r) for r in roles),
        )

    # Mirror format kept in the browser session
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.user_id,
            "username": self.username,
            "email": self.email,
            "roles": list(self.roles),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserSession":
        return cls.from_api(data)


@dataclass
class Event:
    event_id: int
    title: str
    description: str = ""
    location: str = ""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    category: str = ""
    organizer_id: Optional[int] = None
    organizer_username: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    registration_count: int = 0
    max_attendees: Optional[int] = None
    is_active: bool = True

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Event":
        if not isinstance(data, dict) or data.get("eventId") is None:
            raise ValueError("event payload is missing eventId")
        organizer_id = data.get("organizerId")
        max_attendees = data.get("maxAttendees")
        return cls(
            event_id=int(data["eventId"]),
            title=data.get("title") or "",
            description=data.get("description") or "",
            location=data.get("location") or "",
            start_time=parse_dt(data.get("startTime")),
            end_time=parse_dt(data.get("endTime")),
            category=data.get("category") or "",
            organizer_id=int(organizer_id) if organizer_id is not None else None,
            organizer_username=data.get("organizerUsername") or "",
            created_at=parse_dt(data.get("createdAt")),
            updated_at=parse_dt(data.get("updatedAt")),
            registration_count=int(data.get("registrationCount") or 0),
            max_attendees=int(max_attendees) if max_attendees is not None else None,
            is_active=bool(data.get("isActive", True)),
        )

    def is_owned_by(self, user: Optional[UserSession]) -> bool:
        return user is not None and self.organizer_id is not None and self.organizer_id == user.user_id

    @property
    def spots_left(self) -> Optional[int]:
        if self.max_attendees is None:
            return None
        return max(self.max_attendees - self.registration_count, 0)


@dataclass
class Registration:
    id: int
    user_id: Optional[int]
    event_id: int
    registration_time: Optional[datetime] = None
    event_title: Optional[str] = None
    event_start_time: Optional[datetime] = None
    event_end_time: Optional[datetime] = None
    event_location: Optional[str] = None
    user_username: Optional[str] = None
    user_email: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Registration":
        if not isinstance(data, dict):
            raise ValueError("registration payload must be an object")
        # RegistrationResponseDTO names the key registrationId
        raw_id = data.get("id", data.get("registrationId"))
        event_id = data.get("eventId")
        if raw_id is None or event_id is None:
            raise ValueError("registration payload is missing id/eventId")
        user_id = data.get("userId")
        return cls(
            id=int(raw_id),
            user_id=int(user_id) if user_id is not None else None,
            event_id=int(event_id),
            registration_time=parse_dt(data.get("registrationTime")),
            event_title=data.get("eventTitle"),
            event_start_time=parse_dt(data.get("eventStartTime")),
            event_end_time=parse_dt(data.get("eventEndTime")),
            event_location=data.get("eventLocation"),
            user_username=data.get("userUsername"),
            user_email=data.get("userEmail"),
        )


@dataclass
class EventDraft:
    """Fields an organizer submits when creating or editing an event."""

    title: str
    description: str
    location: str
    start_time: datetime
    end_time: datetime
    category: str
    max_attendees: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        # null clears an existing cap
        return {
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "startTime": self.start_time.strftime("%Y-%m-%dT%H:%M:%S"),
            "endTime": self.end_time.strftime("%Y-%m-%dT%H:%M:%S"),
            "category": self.category,
            "maxAttendees": self.max_attendees,
        }
