from __future__ import annotations
from datetime import date, datetime
from enum import Enum
from typing import Any, FrozenSet, Mapping, Optional

from pydantic import Field, TypeAdapter, ValidationError, field_validator, model_validator

from .common import CamelModel, TimeStamped, gen_id


class ClientStatus(str, Enum):
    STUDY_PERMIT = "StudyPermit"
    WORK_PERMIT = "WorkPermit"
    PR = "PR"
    CITIZEN = "Citizen"

    @classmethod
    def _missing_(cls, value):
        # accepte aussi les libellés affichés par les formulaires ("Study Permit", ...)
        if isinstance(value, str):
            wanted = value.strip().lower()
            for member in cls:
                if wanted in (member.value.lower(), member.label.lower()):
                    return member
        return None

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @property
    def color(self) -> str:
        return _STATUS_COLORS[self]

    @property
    def requires_expiry(self) -> bool:
        return self in (ClientStatus.STUDY_PERMIT, ClientStatus.WORK_PERMIT)

    @property
    def forbids_expiry(self) -> bool:
        return self is ClientStatus.CITIZEN


_STATUS_LABELS = {
    ClientStatus.STUDY_PERMIT: "Study Permit",
    ClientStatus.WORK_PERMIT: "Work Permit",
    ClientStatus.PR: "Permanent Resident",
    ClientStatus.CITIZEN: "Citizen",
}

_STATUS_COLORS = {
    ClientStatus.STUDY_PERMIT: "info",
    ClientStatus.WORK_PERMIT: "warning",
    ClientStatus.PR: "success",
    ClientStatus.CITIZEN: "primary",
}

for _table in (_STATUS_LABELS, _STATUS_COLORS):
    if set(_table) != set(ClientStatus):
        raise RuntimeError(f"status mapping incomplete: {sorted(set(ClientStatus) - set(_table))}")


class Contact(CamelModel):
    phone: str
    email: str
    current_address: str


class Status(CamelModel):
    current: ClientStatus
    expiry_date: Optional[date] = None


class ClientFields(CamelModel):
    legal_name: str
    date_of_birth: Optional[date] = None
    contact: Contact
    status: Status


class ClientRecord(ClientFields, TimeStamped):
    id: str = Field(default_factory=gen_id)


_REQUIRED_PATCH_FIELDS = ("legal_name", "contact", "status")


class ClientPatch(CamelModel):
    """
    Mise à jour partielle d'un ClientRecord.
    Seuls les champs explicitement fournis (model_fields_set) sont fusionnés :
    un champ omis ne change rien, date_of_birth=None efface la date.
    """
    model_config = CamelModel.model_config | {"extra": "forbid"}

    legal_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    contact: Optional[Contact] = None
    status: Optional[Status] = None

    @model_validator(mode="after")
    def _no_null_required(self) -> "ClientPatch":
        nulls = [f for f in _REQUIRED_PATCH_FIELDS if f in self.model_fields_set and getattr(self, f) is None]
        if nulls:
            raise ValueError(f"fields cannot be cleared: {', '.join(nulls)}")
        return self

    def apply_to(self, record: ClientRecord) -> ClientRecord:
        changes = {name: getattr(self, name) for name in self.model_fields_set}
        return record.model_copy(update=changes, deep=True)


_DATE = TypeAdapter(date)
_FORM_DATE_FIELDS = ("date_of_birth", "status_expiry_date")


def coerce_form_date(v: Any) -> Optional[date]:
    """Vide -> None, datetime -> sa date ; lève ValueError si illisible."""
    if v is None or (isinstance(v, str) and not v.strip()):
        return None
    if isinstance(v, datetime):
        return v.date()
    try:
        return _DATE.validate_python(v.strip() if isinstance(v, str) else v)
    except ValidationError:
        raise ValueError(f"not a date: {v!r}") from None


class ClientForm(CamelModel):
    """État brut du formulaire client (saisie libre, non validée)."""
    legal_name: str = ""
    date_of_birth: Optional[date] = None
    phone: str = ""
    email: str = ""
    current_address: str = ""
    status: str = ""
    status_expiry_date: Optional[date] = None
    # champs date dont la saisie est illisible (la valeur est alors None)
    invalid_dates: FrozenSet[str] = frozenset()

    @model_validator(mode="before")
    @classmethod
    def _lenient_dates(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        invalid = set(data.get("invalid_dates", data.get("invalidDates")) or ())
        for name in _FORM_DATE_FIELDS:
            alias = cls.model_fields[name].alias
            for key in (name, alias):
                if key not in data:
                    continue
                try:
                    data[key] = coerce_form_date(data[key])
                    invalid.discard(name)
                except ValueError:
                    data[key] = None
                    invalid.add(name)
        data.pop("invalidDates", None)
        data["invalid_dates"] = frozenset(invalid)
        return data

    @field_validator("legal_name", "phone", "email", "current_address", "status", mode="before")
    @classmethod
    def _none_text(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, ClientStatus):
            return v.value
        if not isinstance(v, str):
            return str(v)
        return v

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ClientForm":
        """
        Accepte la forme plate du formulaire ou la forme imbriquée d'un record :
        {"contact": {...}, "status": {"current": ..., "expiryDate": ...}}
        """
        flat = dict(data)
        contact = flat.pop("contact", None)
        if isinstance(contact, Mapping):
            for k, v in contact.items():
                flat.setdefault(k, v)
        status = flat.get("status")
        if isinstance(status, Mapping):
            flat["status"] = status.get("current")
            expiry_keys = ("expiryDate", "expiry_date")
            for k in expiry_keys:
                if k in status:
                    flat.setdefault("statusExpiryDate", status[k])
                    break
        return cls.model_validate(flat)

    @classmethod
    def from_record(cls, record: ClientRecord) -> "ClientForm":
        return cls(
            legal_name=record.legal_name,
            date_of_birth=record.date_of_birth,
            phone=record.contact.phone,
            email=record.contact.email,
            current_address=record.contact.current_address,
            status=record.status.current.value,
            status_expiry_date=record.status.expiry_date,
        )

    def parsed_status(self) -> Optional[ClientStatus]:
        try:
            return ClientStatus(self.status)
        except ValueError:
            return None

    def to_fields(self) -> ClientFields:
        current = self.parsed_status()
        if current is None:
            raise ValueError(f"Unknown client status: {self.status!r}")
        if self.invalid_dates:
            raise ValueError(f"Unreadable dates: {', '.join(sorted(self.invalid_dates))}")
        return ClientFields(
            legal_name=self.legal_name.strip(),
            date_of_birth=self.date_of_birth,
            contact=Contact(
                phone=self.phone.strip(),
                email=self.email.strip(),
                current_address=self.current_address.strip(),
            ),
            status=Status(current=current, expiry_date=self.status_expiry_date),
        )

    def to_patch(self) -> ClientPatch:
        fields = self.to_fields()
        return ClientPatch(
            legal_name=fields.legal_name,
            date_of_birth=fields.date_of_birth,
            contact=fields.contact,
            status=fields.status,
        )
