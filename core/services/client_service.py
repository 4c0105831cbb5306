from __future__ import annotations
from typing import Any, List, Mapping, Optional, Union
import logging
import os

from pydantic import BaseModel

from core.models.client import ClientForm, ClientRecord
from core.services.client_store import STORAGE_KEY, ClientStore
from core.services.client_validator import ClientValidator, ValidationResult
from core.storage.json_slot import JsonFileSlot

log = logging.getLogger(__name__)

DATA_DIR = os.path.abspath(os.path.join(os.path.dirname(os.path.dirname(__file__)), "..", "data"))

FormInput = Union[ClientForm, Mapping[str, Any]]


class SubmitResult(BaseModel):
    validation: ValidationResult
    client: Optional[ClientRecord] = None

    def __bool__(self) -> bool:
        return bool(self.validation) and self.client is not None


class ClientService:
    """
    Point d'entrée de l'UI : valide le formulaire puis délègue au ClientStore.
    Une erreur de validation est renvoyée comme valeur, jamais levée.
    """

    def __init__(self, store: ClientStore, validator: Optional[ClientValidator] = None):
        self.store = store
        self.validator = validator or ClientValidator()

    @classmethod
    def from_data_dir(cls, path: str = DATA_DIR, key: str = STORAGE_KEY, **slot_options) -> "ClientService":
        return cls(ClientStore(JsonFileSlot(path, key, **slot_options)))

    @staticmethod
    def _as_form(form: FormInput) -> ClientForm:
        return form if isinstance(form, ClientForm) else ClientForm.from_mapping(form)

    def list_clients(self) -> List[ClientRecord]:
        return self.store.list()

    def total_clients(self) -> int:
        return self.store.count()

    def get_client(self, client_id: str) -> Optional[ClientRecord]:
        return self.store.get_by_id(client_id)

    def check_field(self, field_name: str, value: Any, form: Optional[FormInput] = None) -> ValidationResult:
        return self.validator.validate_field(field_name, value, form)

    def create_client(self, form: FormInput) -> SubmitResult:
        form = self._as_form(form)
        result = self.validator.validate(form)
        if not result:
            log.debug("create rejected: %s", result.reason)
            return SubmitResult(validation=result)
        return SubmitResult(validation=result, client=self.store.create(form.to_fields()))

    def update_client(self, client_id: str, form: FormInput) -> SubmitResult:
        form = self._as_form(form)
        result = self.validator.validate(form)
        if not result:
            log.debug("update of %s rejected: %s", client_id, result.reason)
            return SubmitResult(validation=result)
        updated = self.store.update(client_id, form.to_patch())
        if updated is None:
            return SubmitResult(validation=ValidationResult.invalid("Client not found"))
        return SubmitResult(validation=result, client=updated)

    def delete_client(self, client_id: str) -> bool:
        return self.store.delete(client_id)
