from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Tuple


@dataclass(frozen=True)
class RowRecord:
    index: int
    field_names: Tuple[str, ...]
    values: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # freeze the mapping too; the dataclass alone only freezes attributes
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @property
    def primary_field(self) -> str:
        return self.field_names[0] if self.field_names else ""

    @property
    def primary_value(self) -> str:
        return self.values.get(self.primary_field, "")

    def as_dict(self) -> Dict[str, str]:
        return {name: self.values.get(name, "") for name in self.field_names}
