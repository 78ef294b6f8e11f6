"""
In-memory gallery of image records.

Records are kept in insertion order and indexed by id. The store itself is
not thread-safe: every mutation is routed through the processing
coordinator, which serializes access.

Classes:
    GalleryStore: Ordered, id-keyed collection of ImageRecords
"""

from collections import OrderedDict
from typing import Iterator, List, Optional

from SG_Libs.ImageEditingLib.image_models import ImageRecord


class GalleryStore:
    """Insertion-ordered collection of ImageRecords keyed by id."""

    def __init__(self):
        self._records: "OrderedDict[str, ImageRecord]" = OrderedDict()

    def insert(self, record: ImageRecord) -> str:
        """
        Append a record.

        Returns:
            The record id

        Raises:
            ValueError: If a record with the same id already exists
        """
        if record.id in self._records:
            raise ValueError(f"Record {record.id} is already in the gallery")
        self._records[record.id] = record
        return record.id

    def remove(self, record_id: str) -> Optional[ImageRecord]:
        """Remove and return a record, or None if it does not exist."""
        return self._records.pop(record_id, None)

    def get(self, record_id: str) -> Optional[ImageRecord]:
        return self._records.get(record_id)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ImageRecord]:
        return iter(list(self._records.values()))

    def ids(self) -> List[str]:
        return list(self._records)

    def records(self) -> List[ImageRecord]:
        """All records in insertion order."""
        return list(self._records.values())

    def newest_first(self) -> List[ImageRecord]:
        """All records, most recently inserted first (gallery display order)."""
        return list(reversed(self._records.values()))
