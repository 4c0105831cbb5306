"""
Validation des formulaires client.

Une seule table de règles ordonnées sert à la fois à la validation complète
(première règle en échec = raison affichée) et à la validation champ par champ
pour le retour en direct. Les deux modes ne peuvent donc pas diverger.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel

from core.models.client import ClientForm

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PHONE_DIGITS = 10


class ValidationResult(BaseModel):
    ok: bool
    reason: Optional[str] = None
    field: Optional[str] = None

    @classmethod
    def valid(cls) -> "ValidationResult":
        return cls(ok=True)

    @classmethod
    def invalid(cls, reason: str, field: Optional[str] = None) -> "ValidationResult":
        return cls(ok=False, reason=reason, field=field)

    def __bool__(self) -> bool:
        return self.ok


def phone_digits(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


def _blank(value: str) -> bool:
    return not (value or "").strip()


# ----------------- Règles ----------------- #
# Chaque règle reçoit le formulaire et la date du jour, renvoie un message ou None.

def _legal_name(form: ClientForm, today: date) -> Optional[str]:
    if _blank(form.legal_name):
        return "Legal Name is required"
    return None


def _phone(form: ClientForm, today: date) -> Optional[str]:
    if _blank(form.phone):
        return "Phone is required"
    if len(phone_digits(form.phone)) < MIN_PHONE_DIGITS:
        return "Please enter a valid phone number (minimum 10 digits)"
    return None


def _email(form: ClientForm, today: date) -> Optional[str]:
    if _blank(form.email):
        return "Email is required"
    if not EMAIL_RE.match(form.email.strip()):
        return "Please enter a valid email address"
    return None


def _current_address(form: ClientForm, today: date) -> Optional[str]:
    if _blank(form.current_address):
        return "Current Address is required"
    return None


def _status(form: ClientForm, today: date) -> Optional[str]:
    if _blank(form.status):
        return "Status is required"
    if form.parsed_status() is None:
        return "Please select a valid status"
    return None


def _date_of_birth(form: ClientForm, today: date) -> Optional[str]:
    if "date_of_birth" in form.invalid_dates:
        return "Please enter a valid date of birth"
    if form.date_of_birth is not None and form.date_of_birth > today:
        return "Date of birth cannot be in the future"
    return None


def _expiry_readable(form: ClientForm, today: date) -> Optional[str]:
    if "status_expiry_date" in form.invalid_dates:
        return "Please enter a valid status expiry date"
    return None


def _citizen_no_expiry(form: ClientForm, today: date) -> Optional[str]:
    status = form.parsed_status()
    if status is not None and status.forbids_expiry and form.status_expiry_date is not None:
        return "Citizens do not need a status expiry date"
    return None


def _permit_needs_expiry(form: ClientForm, today: date) -> Optional[str]:
    status = form.parsed_status()
    if status is not None and status.requires_expiry and form.status_expiry_date is None:
        return f"{status.label} requires an expiry date"
    return None


def _expiry_not_past(form: ClientForm, today: date) -> Optional[str]:
    if form.status_expiry_date is not None and form.status_expiry_date < today:
        return "Status expiry date cannot be in the past"
    return None


@dataclass(frozen=True)
class Rule:
    fields: Tuple[str, ...]
    check: Callable[[ClientForm, date], Optional[str]]


RULES: List[Rule] = [
    Rule(("legal_name",), _legal_name),
    Rule(("phone",), _phone),
    Rule(("email",), _email),
    Rule(("current_address",), _current_address),
    Rule(("status",), _status),
    Rule(("date_of_birth",), _date_of_birth),
    Rule(("status_expiry_date", "status"), _expiry_readable),
    Rule(("status_expiry_date", "status"), _citizen_no_expiry),
    Rule(("status_expiry_date", "status"), _permit_needs_expiry),
    Rule(("status_expiry_date",), _expiry_not_past),
]

FormInput = Union[ClientForm, Mapping[str, Any]]


class ClientValidator:
    def __init__(self, today: Callable[[], date] = date.today, rules: Optional[List[Rule]] = None):
        self._today = today
        self._rules = list(rules) if rules is not None else RULES

    @staticmethod
    def _as_form(fields: FormInput) -> ClientForm:
        if isinstance(fields, ClientForm):
            return fields
        return ClientForm.from_mapping(fields)

    def _run(self, form: ClientForm, rules: List[Rule]) -> ValidationResult:
        today = self._today()
        for rule in rules:
            reason = rule.check(form, today)
            if reason:
                return ValidationResult.invalid(reason, field=rule.fields[0])
        return ValidationResult.valid()

    def validate(self, fields: FormInput) -> ValidationResult:
        return self._run(self._as_form(fields), self._rules)

    def validate_field(self, field_name: str, value: Any, context: Optional[FormInput] = None) -> ValidationResult:
        """
        Applique uniquement les règles liées à `field_name`, sur le contexte
        du formulaire où ce champ est remplacé par `value`.
        Un nom de champ inconnu est toujours valide.
        """
        # accepte aussi le nom camelCase (legalName, statusExpiryDate...)
        name = _FIELD_NAMES.get(field_name, field_name)
        rules = [r for r in self._rules if name in r.fields]
        if not rules:
            return ValidationResult.valid()
        base = self._as_form(context) if context is not None else ClientForm()
        # les dates illisibles du contexte restent signalées
        data = base.model_dump(exclude=set(base.invalid_dates) - {name})
        data[name] = value
        return self._run(ClientForm.model_validate(data), rules)


_FIELD_NAMES = {
    info.alias: name for name, info in ClientForm.model_fields.items() if info.alias
}
