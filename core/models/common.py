from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime, timezone
import uuid

def gen_id() -> str:
    return str(uuid.uuid4())

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(dt: datetime) -> datetime:
    # un horodatage sans fuseau (ancien datetime.utcnow()) est considéré comme UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt

class CamelModel(BaseModel):
    """Champs snake_case en Python, clés camelCase une fois sérialisés."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

class TimeStamped(CamelModel):
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware(cls, v: datetime) -> datetime:
        return as_utc(v)

    def touch(self, now: datetime | None = None):
        now = as_utc(now or utcnow())
        # updated_at ne passe jamais sous created_at, même si l'horloge recule
        object.__setattr__(self, "updated_at", max(now, self.created_at))
