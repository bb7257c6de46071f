"""Archive backend state directories before a destructive reset."""

from __future__ import annotations

import logging
import tarfile
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from pulse_common.errors import ProvisioningError

logger = logging.getLogger(__name__)

_EXCLUDED_DIR_NAMES = {"_lima"}


def _exclude(info: tarfile.TarInfo) -> Optional[tarfile.TarInfo]:
    parts = Path(info.name).parts
    if any(part in _EXCLUDED_DIR_NAMES for part in parts):
        return None
    if info.name.endswith(".sock"):
        return None
    if not (info.isfile() or info.isdir() or info.issym()):
        return None
    return info


class StateBackup:
    """Write ``backup-<profile>-<stamp>.<tag>.tar.gz`` archives."""

    def __init__(self, backup_dir: Path, profile: str):
        self.backup_dir = backup_dir
        self.profile = profile

    def archive(
        self, sources: Iterable[tuple[str, Path]], *, now: datetime | None = None
    ) -> List[Path]:
        stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
        base = self.backup_dir / f"backup-{self.profile}-{stamp}"
        written: list[Path] = []
        for tag, source in sources:
            if not source.is_dir():
                logger.info("Backup source %s absent; skipping", source)
                continue
            target = base.parent / f"{base.name}.{tag}.tar.gz"
            try:
                self.backup_dir.mkdir(parents=True, exist_ok=True)
                with tarfile.open(target, "w:gz") as tar:
                    tar.add(source, arcname=source.name, filter=_exclude)
            except (OSError, tarfile.TarError) as exc:
                raise ProvisioningError(
                    f"Backup of {source} failed: {exc}",
                    context={"source": source, "target": target},
                    cause=exc,
                ) from exc
            logger.info("Backed up %s to %s", source, target)
            written.append(target)
        return written
