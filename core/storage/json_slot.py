from __future__ import annotations

import glob
import logging
import os
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from core.storage.slot import Slot

log = logging.getLogger(__name__)


class JsonFileSlot(Slot):
    """
    Slot persisté dans un fichier JSON unique : <directory>/<key>.json
    - Écriture atomique (fichier temporaire + os.replace)
    - Rotation de backups (backup_enabled, backup_keep)
    - N'écrit pas si le contenu ne change pas (réduction du bruit et des .bak)
    """

    def __init__(
        self,
        directory: Union[str, Path],
        key: str,
        *,
        backup_enabled: bool = True,
        backup_keep: int = 5,
    ) -> None:
        self.key = key
        self.filepath = Path(directory) / f"{key}.json"
        self.backup_enabled = backup_enabled
        self.backup_keep = max(0, int(backup_keep))

        self.filepath.parent.mkdir(parents=True, exist_ok=True)

    # ---------------- I/O bas niveau ---------------- #

    def read(self) -> Optional[str]:
        try:
            text = self.filepath.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        log.debug("read %d chars from %s", len(text), self.filepath)
        return text

    def quarantine(self) -> None:
        if not self.filepath.exists():
            return
        target = self.filepath.with_suffix(".corrupt.json")
        try:
            shutil.copy2(self.filepath, target)
        except OSError as e:
            log.warning("could not copy corrupt slot %s to %s: %s", self.key, target, e)
            return
        log.warning("corrupt slot %s copied to %s", self.key, target)

    def backups(self) -> list[Path]:
        pattern = str(self.filepath.with_suffix(".*.bak.json"))
        return [Path(p) for p in sorted(glob.glob(pattern))]

    def _rotate_backups(self) -> None:
        if not self.backup_enabled or self.backup_keep <= 0:
            return
        files = self.backups()
        # garde les plus récents
        for old in files[: max(0, len(files) - self.backup_keep)]:
            old.unlink(missing_ok=True)

    def _backup(self) -> None:
        ts = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        backup = self.filepath.with_suffix(f".{ts}.bak.json")
        shutil.copy2(self.filepath, backup)
        self._rotate_backups()

    def write(self, text: str) -> None:
        # si contenu identique → ne rien faire
        if self.read() == text:
            return

        if self.backup_enabled and self.backup_keep > 0 and self.filepath.exists():
            self._backup()

        fd, tmp = tempfile.mkstemp(prefix=f".{self.key}.", suffix=".tmp", dir=self.filepath.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp, self.filepath)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        log.debug("wrote %d chars to %s", len(text), self.filepath)
