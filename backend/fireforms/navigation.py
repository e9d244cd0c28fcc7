from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from .forms import FormDefinition, validate_sections
from .frequency import resolve_navigation
from .models import Frequency, NavigationState, Section

logger = logging.getLogger(__name__)


class SectionNotAvailableError(ValueError):
    """Raised when a hidden section is selected for the active frequency."""


@dataclass
class FormSession:
    """Wizard state of record for one inspection form.

    ``current_section`` is the authoritative pointer. Navigation state is always
    re-derived from the sections, the frequency and that pointer, and a forced
    correction is written back and reported through ``on_section_change``.
    """

    form: FormDefinition
    frequency: Union[Frequency, str, None] = None
    current_section: str = ""
    on_section_change: Optional[Callable[[str], None]] = None
    sections: tuple[Section, ...] = field(init=False)

    def __post_init__(self) -> None:
        self.sections = validate_sections(self.form.sections)
        self.frequency = self._normalize_frequency(self.frequency)
        if not self.current_section and self.sections:
            self.current_section = self.sections[0].id

    @property
    def effective_frequency(self) -> Union[Frequency, str, None]:
        """Frequency handed to the resolver.

        Unknown codes are passed through so the resolver fails open on them. A
        known frequency the form does not offer resolves like no frequency.
        """
        if not self.form.frequency_gated:
            return None
        if isinstance(self.frequency, Frequency) and not self.form.offers(self.frequency):
            return None
        return self.frequency

    @property
    def frequency_code(self) -> Optional[str]:
        return self.frequency.value if isinstance(self.frequency, Frequency) else self.frequency

    @property
    def state(self) -> NavigationState:
        return resolve_navigation(self.sections, self.effective_frequency, self.current_section)

    @property
    def hidden_sections(self) -> tuple[Section, ...]:
        enabled = self.state.enabled_section_ids
        return tuple(section for section in self.sections if section.id not in enabled)

    @property
    def progress(self) -> tuple[int, int]:
        state = self.state
        ids = [section.id for section in state.visible_sections]
        position = ids.index(state.current_section) + 1 if state.current_section in ids else 0
        return position, len(ids)

    def section(self, section_id: str) -> Section:
        for section in self.sections:
            if section.id == section_id:
                return section
        raise LookupError(f"Section '{section_id}' is not part of {self.form.title}")

    def sync(self) -> NavigationState:
        state = self.state
        if state.changed:
            previous = self.current_section
            self.current_section = state.current_section
            logger.info(
                "%s: section '%s' unavailable for frequency %s, moved to '%s'",
                self.form.form_type.value,
                previous,
                self.frequency_code or "none",
                state.current_section,
            )
            if self.on_section_change is not None:
                self.on_section_change(state.current_section)
        return state

    def set_frequency(self, frequency: Union[Frequency, str, None]) -> NavigationState:
        self.frequency = self._normalize_frequency(frequency)
        return self.sync()

    def select_section(self, section_id: str) -> NavigationState:
        self.section(section_id)
        state = self.sync()
        if not state.is_section_enabled(section_id):
            raise SectionNotAvailableError(
                f"Section '{section_id}' is hidden for the selected frequency"
            )
        self.current_section = section_id
        return self.state

    def next_section(self) -> NavigationState:
        return self._step(1)

    def previous_section(self) -> NavigationState:
        return self._step(-1)

    def _step(self, offset: int) -> NavigationState:
        state = self.sync()
        ids = [section.id for section in state.visible_sections]
        if not ids:
            return state
        index = ids.index(state.current_section) if state.current_section in ids else 0
        target = max(0, min(index + offset, len(ids) - 1))
        return self.select_section(ids[target])

    def _normalize_frequency(self, value: Union[Frequency, str, None]) -> Union[Frequency, str, None]:
        if value is None or not str(value).strip():
            return None
        parsed = Frequency.parse(value)
        if parsed is None:
            return str(value).strip()
        if self.form.frequency_gated and not self.form.offers(parsed):
            logger.warning(
                "%s does not offer frequency %s; showing every section",
                self.form.form_type.value,
                parsed.value,
            )
        return parsed
