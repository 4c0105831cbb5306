from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Union

from pydantic import ValidationError

from core.models.client import ClientFields, ClientPatch, ClientRecord
from core.models.common import gen_id, utcnow
from core.storage.slot import Slot

log = logging.getLogger(__name__)

STORAGE_KEY = "apple_crm_clients"


class ClientStore:
    """
    Collection ordonnée des clients, miroir en mémoire d'un slot unique.
    - Lecture du slot à la construction (reload() pour relire)
    - Chaque mutation relit le slot, réécrit toute la collection, puis met à jour le miroir
    - Aucune validation métier ici : l'appelant passe par ClientValidator
    """

    def __init__(self, slot: Slot, clock: Callable[[], datetime] = utcnow) -> None:
        self.slot = slot
        self._clock = clock
        self._records: List[ClientRecord] = self._load()

    # ---------------- (dé)sérialisation ---------------- #

    def _load(self) -> List[ClientRecord]:
        raw = self.slot.read()
        if raw is None or not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            data = None
        if not isinstance(data, list):
            # contenu corrompu → mis de côté, on repart sur liste vide
            log.warning("slot %s is not a JSON list, starting from an empty collection", self.slot.key)
            self.slot.quarantine()
            return []

        out: List[ClientRecord] = []
        for idx, item in enumerate(data):
            try:
                out.append(ClientRecord.model_validate(item))
            except ValidationError as e:
                # On ignore les entrées invalides pour ne pas casser l'UI
                log.warning("skipping malformed client #%d in slot %s: %s", idx, self.slot.key, e.error_count())
        return out

    def _save(self, records: List[ClientRecord]) -> None:
        self.slot.write(json.dumps([r.to_json_dict() for r in records], ensure_ascii=False, indent=2))
        self._records = records

    @staticmethod
    def _index_of(records: List[ClientRecord], client_id: str) -> int:
        for i, r in enumerate(records):
            if r.id == client_id:
                return i
        return -1

    # ---------------- Lecture ---------------- #

    def reload(self) -> List[ClientRecord]:
        self._records = self._load()
        return self.list()

    def list(self) -> List[ClientRecord]:
        return [r.model_copy(deep=True) for r in self._records]

    def count(self) -> int:
        return len(self._records)

    def __len__(self) -> int:
        return self.count()

    def get_by_id(self, client_id: str) -> Optional[ClientRecord]:
        idx = self._index_of(self._records, client_id)
        if idx < 0:
            return None
        return self._records[idx].model_copy(deep=True)

    # ---------------- CRUD ---------------- #

    def create(self, fields: Union[ClientFields, Mapping[str, Any]]) -> ClientRecord:
        if not isinstance(fields, ClientFields):
            fields = ClientFields.model_validate(fields)
        records = self._load()
        new_id = gen_id()
        while self._index_of(records, new_id) >= 0:
            new_id = gen_id()
        now = self._clock()
        record = ClientRecord(id=new_id, created_at=now, updated_at=now, **fields.model_dump())
        self._save(records + [record])
        log.info("client %s created", record.id)
        return record.model_copy(deep=True)

    def update(self, client_id: str, patch: Union[ClientPatch, Mapping[str, Any]]) -> Optional[ClientRecord]:
        if not isinstance(patch, ClientPatch):
            patch = ClientPatch.model_validate(patch)
        records = self._load()
        idx = self._index_of(records, client_id)
        if idx < 0:
            log.info("update skipped, client %s not found", client_id)
            return None
        merged = patch.apply_to(records[idx])
        merged.touch(self._clock())
        records[idx] = merged
        self._save(records)
        log.info("client %s updated (%s)", client_id, ", ".join(sorted(patch.model_fields_set)) or "no fields")
        return merged.model_copy(deep=True)

    def delete(self, client_id: str) -> bool:
        records = self._load()
        kept = [r for r in records if r.id != client_id]
        if len(kept) == len(records):
            return False
        self._save(kept)
        log.info("client %s deleted", client_id)
        return True
