from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Generic, Optional, TypeVar


class ImportResult(Enum):
    SUCCESS_ORIG = "IMPORT_SUCCESS_ORIG"
    SUCCESS_DUPE = "IMPORT_SUCCESS_DUPE"
    SUCCESS_COLLIDE = "IMPORT_SUCCESS_COLLIDE"
    DECLINE_MIMETYPE = "IMPORT_DECLINE_MIMETYPE"

    @property
    def ok(self) -> bool:
        return self is not ImportResult.DECLINE_MIMETYPE


class PurgeResult(Enum):
    SUCCESS = "PURGE_SUCCESS"
    OMIT_UNIMPORTED = "PURGE_OMIT_UNIMPORTED"
    OMIT_INDEX = "PURGE_OMIT_INDEX"

    @property
    def ok(self) -> bool:
        return self is PurgeResult.SUCCESS


class ThumbnailResult(Enum):
    SUCCESS_ORIG = "THUMBNAIL_SUCCESS_ORIG"
    SUCCESS_COLLIDE = "THUMBNAIL_SUCCESS_COLLIDE"
    DECLINE_UNIMPORTED = "THUMBNAIL_DECLINE_UNIMPORTED"
    DECLINE_MIMETYPE = "THUMBNAIL_DECLINE_MIMETYPE"
    FAIL = "THUMBNAIL_FAIL"

    @property
    def ok(self) -> bool:
        return self in (ThumbnailResult.SUCCESS_ORIG, ThumbnailResult.SUCCESS_COLLIDE)


class ThumbnailKind(Enum):
    PICTURE = "picture"
    VIDEO = "video"


R = TypeVar("R", ImportResult, PurgeResult, ThumbnailResult)

NOT_APPLICABLE = "NA"


@dataclass(frozen=True)
class Report(Generic[R]):
    """
    Outcome of a single-file operation: (action, source, destination).
    """
    action: R
    source: Path
    destination: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.action.ok

    @property
    def code(self) -> str:
        return self.action.value

    def serialize(self) -> str:
        """Single-line, tab-separated record for downstream log parsing."""
        dest = str(self.destination) if self.destination is not None else NOT_APPLICABLE
        return f"{self.code}\t{self.source}\t{dest}"

    def __str__(self) -> str:
        return self.serialize()
