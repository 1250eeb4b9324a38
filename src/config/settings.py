"""Settings management - loads from .env and campus.yaml."""

from dataclasses import dataclass, field
from pathlib import Path
import re

import yaml
from dotenv import load_dotenv
import os

REBUILD_TIME_PATTERN = re.compile(r"([01]?\d|2[0-3]):([0-5]\d)")


@dataclass
class MeetupLocation:
    """A public campus spot suggested for buyer/seller meetups."""

    slug: str
    label: str

    @classmethod
    def from_dict(cls, data: dict) -> "MeetupLocation":
        return cls(
            slug=data["slug"],
            label=data.get("label", data["slug"]),
        )


@dataclass
class Settings:
    """Application settings loaded from environment and config files."""

    # Institution whose email addresses may sign up
    institution_domain: str = "rit.edu"
    institution_name: str = ""

    # Identity provider (Supabase-compatible auth API)
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""

    # Key-value store
    db_path: str = "marketplace.db"
    kv_timeout: float = 5.0  # seconds per storage call

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # Maintenance
    index_rebuild_time: str = "03:00"  # HH:MM, empty disables the job
    admin_token: str = ""

    meetup_locations: list[MeetupLocation] = field(default_factory=list)

    @classmethod
    def load(cls, env_path: str | None = None, campus_path: str | None = None) -> "Settings":
        """Load settings from .env file and campus.yaml."""
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        institution = {}
        meetup_locations = []
        campus_file = Path(campus_path) if campus_path else Path("config/campus.yaml")
        if campus_file.exists():
            with open(campus_file) as f:
                campus_data = yaml.safe_load(f) or {}
            institution = campus_data.get("institution") or {}
            meetup_locations = [
                MeetupLocation.from_dict(m) for m in campus_data.get("meetup_locations") or []
            ]

        return cls(
            institution_domain=os.getenv(
                "INSTITUTION_DOMAIN", institution.get("email_domain", "rit.edu")
            ),
            institution_name=institution.get("name", ""),
            supabase_url=os.getenv("SUPABASE_URL", ""),
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY", ""),
            supabase_service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY", ""),
            db_path=os.getenv("DB_PATH", "marketplace.db"),
            kv_timeout=float(os.getenv("KV_TIMEOUT", "5")),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            index_rebuild_time=os.getenv("INDEX_REBUILD_TIME", "03:00"),
            admin_token=os.getenv("ADMIN_TOKEN", ""),
            meetup_locations=meetup_locations,
        )

    @property
    def email_suffix(self) -> str:
        """Suffix every signup email must end with, e.g. '@rit.edu'."""
        return "@" + self.institution_domain.lstrip("@").lower()

    def get_meetup_location(self, slug: str) -> MeetupLocation | None:
        """Get a meetup location by slug (case-insensitive)."""
        slug_lower = slug.lower()
        for location in self.meetup_locations:
            if location.slug.lower() == slug_lower:
                return location
        return None

    def rebuild_schedule(self) -> tuple[int, int] | None:
        """Return (hour, minute) for the index rebuild job.

        None when the rebuild is disabled or the time is malformed; validate()
        reports the latter.
        """
        match = REBUILD_TIME_PATTERN.fullmatch(self.index_rebuild_time or "")
        if not match:
            return None
        return int(match.group(1)), int(match.group(2))

    def validate(self) -> list[str]:
        """Validate settings and return list of errors."""
        errors = []
        if not self.supabase_url:
            errors.append("SUPABASE_URL is required")
        if not self.supabase_anon_key:
            errors.append("SUPABASE_ANON_KEY is required")
        if not self.supabase_service_role_key:
            errors.append("SUPABASE_SERVICE_ROLE_KEY is required for signup")
        if self.index_rebuild_time and not REBUILD_TIME_PATTERN.fullmatch(
            self.index_rebuild_time
        ):
            errors.append(f"INDEX_REBUILD_TIME must be HH:MM, got '{self.index_rebuild_time}'")
        if self.kv_timeout <= 0:
            errors.append("KV_TIMEOUT must be positive")
        return errors
