"""TXT record interpretation."""

from .interpreter import (
    EMPTY_VALUE,
    RecordInterpreter,
    categorize,
    describe_records,
    interpret,
    interpret_value,
    readable_key,
)

__all__ = [
    "EMPTY_VALUE",
    "RecordInterpreter",
    "categorize",
    "describe_records",
    "interpret",
    "interpret_value",
    "readable_key",
]
