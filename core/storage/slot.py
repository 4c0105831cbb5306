"""
Emplacement de stockage clé/valeur.

Un slot contient un seul texte sérialisé (toute la collection). Il ne sait
rien du format : le parsing et la détection de corruption sont faits par
l'appelant.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional


class Slot(ABC):
    key: str

    @abstractmethod
    def read(self) -> Optional[str]:
        """Contenu brut, ou None si le slot n'a jamais été écrit."""

    @abstractmethod
    def write(self, text: str) -> None:
        """Remplace tout le contenu (tout ou rien)."""

    def quarantine(self) -> None:
        """Met de côté un contenu illisible avant qu'il soit écrasé."""


class MemorySlot(Slot):
    """Slot en mémoire, partagé via un dict (tests, sessions jetables)."""

    def __init__(self, key: str, backend: Optional[Dict[str, str]] = None) -> None:
        self.key = key
        self.backend: Dict[str, str] = backend if backend is not None else {}
        self.quarantined: Optional[str] = None

    def read(self) -> Optional[str]:
        return self.backend.get(self.key)

    def write(self, text: str) -> None:
        self.backend[self.key] = text

    def quarantine(self) -> None:
        self.quarantined = self.backend.get(self.key)
