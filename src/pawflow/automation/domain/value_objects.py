"""
Automation Value Objects
========================

Immutable values passed between the scheduler, executor and action handlers.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Optional

from pawflow.core import ValidationException


class Document(Mapping[str, Any]):
    """
    Permissive JSON object used for trigger payloads and action configs.

    Callers decide the shape; the engine only reads the handful of fields
    it needs through the typed accessors below. Missing or empty fields are
    reported as None instead of raising.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self._data: Dict[str, Any] = dict(data or {})

    @classmethod
    def parse(cls, raw: Any) -> "Document":
        """Build from a mapping, a JSON object string, or None."""
        if raw is None or raw == "":
            return cls()
        if isinstance(raw, Document):
            return raw
        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw)
            except ValueError as e:
                raise ValidationException(f"Document is not valid JSON: {e}")
        if not isinstance(raw, Mapping):
            raise ValidationException(
                "Document must be a JSON object",
                {"type": type(raw).__name__}
            )
        return cls(raw)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Document({self._data!r})"

    def get_str(self, key: str) -> Optional[str]:
        """Field as a string; None when absent or falsy."""
        value = self._data.get(key)
        if not value:
            return None
        return str(value)

    def first_str(self, *keys: str) -> Optional[str]:
        """First truthy field among ``keys``, as a string."""
        for key in keys:
            value = self.get_str(key)
            if value is not None:
                return value
        return None

    def merged(self, **extra: Any) -> "Document":
        """New document with ``extra`` applied underneath existing fields."""
        return Document({**extra, **self._data})

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)


@dataclass(frozen=True)
class ActionOutcome:
    """Result of one action inside a run."""
    action: str
    result: Dict[str, Any] = field(default_factory=dict)

    @property
    def skipped(self) -> bool:
        return "skipped" in self.result

    def to_dict(self) -> Dict[str, Any]:
        return {"action": self.action, "result": dict(self.result)}


def skip(reason: str) -> Dict[str, Any]:
    """Result body for an action that chose not to act."""
    return {"skipped": reason}
