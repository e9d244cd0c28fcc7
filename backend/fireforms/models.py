from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


@dataclass(frozen=True)
class Section:
    id: str
    title: str
    icon: str = ""


class Frequency(str, Enum):
    DAILY = "diaria"
    WEEKLY = "semanal"
    MONTHLY = "mensal"
    QUARTERLY = "trimestral"
    SEMIANNUAL = "semestral"
    ANNUAL = "anual"
    FIVE_YEAR = "5anos"

    @property
    def tier(self) -> int:
        return list(Frequency).index(self)

    @classmethod
    def parse(cls, value: Union["Frequency", str, None]) -> Optional["Frequency"]:
        """Map a submitted frequency code onto a member, or ``None`` if it is not one.

        Accepts members, wire values (``"mensal"``) and member names in any case
        (``"monthly"``, ``"FIVE_YEAR"``).
        """
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        code = str(value).strip()
        if not code:
            return None
        try:
            return cls(code.lower())
        except ValueError:
            pass
        return cls.__members__.get(code.upper())


@dataclass(frozen=True)
class FrequencyPolicy:
    frequency: Frequency
    included_section_ids: tuple[str, ...]
    cumulative: bool = True


@dataclass(frozen=True)
class SectionResolution:
    section_id: str
    changed: bool


@dataclass(frozen=True)
class NavigationState:
    visible_sections: tuple[Section, ...]
    enabled_section_ids: frozenset[str]
    current_section: str
    changed: bool
    has_frequency_restriction: bool

    def is_section_enabled(self, section_id: str) -> bool:
        return section_id in self.enabled_section_ids

    def is_section_visible(self, section_id: str) -> bool:
        return section_id in self.enabled_section_ids


@dataclass(frozen=True)
class FrequencyInfo:
    frequency: str
    included_sections: tuple[str, ...]
    description: str
