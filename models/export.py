"""Export job data models"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ExportProgress:
    """Snapshot of the active export job (or of the idle state)"""
    current: int = 0
    total: int = 0
    processing_id: Optional[str] = None
    active: bool = False

    def to_dict(self) -> dict:
        return {
            "current": self.current,
            "total": self.total,
            "processing_id": self.processing_id,
            "active": self.active,
        }


IDLE_PROGRESS = ExportProgress()


@dataclass(frozen=True)
class ExportResult:
    """Finalized archive produced by a successful export"""
    archive: bytes
    filename: str
    count: int
