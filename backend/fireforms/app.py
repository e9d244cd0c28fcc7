from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Union

from .catalog import FormCatalogService
from .forms import FormType
from .frequency import FALLBACK_DESCRIPTION, describe_frequency
from .models import Frequency, FrequencyInfo
from .navigation import FormSession


@dataclass
class InspectionFormsApp:
    catalog: FormCatalogService

    @classmethod
    def create(cls) -> "InspectionFormsApp":
        return cls(catalog=FormCatalogService())

    # Form operations
    def list_forms(self) -> dict[str, dict[str, object]]:
        return self.catalog.list_forms()

    def open_session(
        self,
        form_type: FormType,
        *,
        frequency: Union[Frequency, str, None] = None,
        current_section: Optional[str] = None,
        on_section_change: Optional[Callable[[str], None]] = None,
    ) -> FormSession:
        form = self.catalog.get_form(form_type)
        session = FormSession(
            form=form,
            frequency=frequency,
            current_section=current_section or "",
            on_section_change=on_section_change,
        )
        session.sync()
        return session

    # Frequency operations
    def describe_frequency(
        self,
        frequency: Union[Frequency, str, None],
        *,
        form_type: Optional[FormType] = None,
    ) -> Optional[FrequencyInfo]:
        if form_type is None:
            return describe_frequency(frequency)
        form = self.catalog.get_form(form_type)
        parsed = Frequency.parse(frequency)
        if parsed is not None and form.frequency_gated and not form.offers(parsed):
            return FrequencyInfo(frequency=parsed.value, included_sections=(), description=FALLBACK_DESCRIPTION)
        return describe_frequency(frequency, form.sections)

    def frequency_matrix(self, form_type: FormType) -> dict[str, dict[str, bool]]:
        return self.catalog.frequency_matrix(form_type)

    def export_frequency_workbook(
        self,
        *,
        form_types: Optional[list[FormType]] = None,
        generated_at: Optional[datetime] = None,
    ) -> tuple[str, bytes]:
        return self.catalog.export_frequency_workbook(form_types=form_types, generated_at=generated_at)
