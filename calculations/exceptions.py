"""
Exceptions raised by the commission calculation pipeline and result store
"""

from typing import Optional


class CommissionError(Exception):
    """Base class for commission calculation errors"""


class InputError(CommissionError):
    """Raised when a run cannot start: missing scheme, empty sales, malformed record"""

    def __init__(self, message: str, record_index: Optional[int] = None):
        super().__init__(message)
        self.record_index = record_index


class SchemeNotFound(InputError):
    """Raised when the requested scheme does not exist in the owner's namespace"""


class StorageFailure(CommissionError):
    """Raised after a failed chunked store, once compensating deletes were attempted"""

    def __init__(self, message: str, calculation_id: str, chunks_written: int, total_chunks: int):
        super().__init__(message)
        self.calculation_id = calculation_id
        self.chunks_written = chunks_written
        self.total_chunks = total_chunks

    def to_dict(self):
        return {
            "calculation_id": self.calculation_id,
            "chunks_written": self.chunks_written,
            "total_chunks": self.total_chunks,
            "error": str(self),
        }
