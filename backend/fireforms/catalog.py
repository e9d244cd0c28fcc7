from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from .forms import FORM_DEFINITIONS, FormDefinition, FormType
from .frequency import FREQUENCY_DESCRIPTIONS, FREQUENCY_POLICIES, resolve_enabled_ids, resolve_visible_sections
from .models import Frequency

INCLUDED_MARK = "✓"


@dataclass
class FormCatalogService:
    forms: Mapping[FormType, FormDefinition] = field(default_factory=lambda: dict(FORM_DEFINITIONS))

    def get_form(self, form_type: FormType) -> FormDefinition:
        form = self.forms.get(form_type)
        if form is None:
            raise LookupError(f"Form '{form_type.value}' is not available")
        return form

    def list_forms(self) -> dict[str, dict[str, object]]:
        return {
            form.form_type.value: {
                "title": form.title,
                "frequency_gated": form.frequency_gated,
                "sections": [
                    {"id": section.id, "title": section.title, "icon": section.icon}
                    for section in form.sections
                ],
            }
            for form in self.forms.values()
        }

    def frequency_matrix(self, form_type: FormType) -> dict[str, dict[str, bool]]:
        """Map each section id of a form to the frequencies that unlock it."""
        form = self.get_form(form_type)
        matrix: dict[str, dict[str, bool]] = {section.id: {} for section in form.sections}
        for frequency in Frequency:
            scope = frequency if form.offers(frequency) else None
            enabled = resolve_enabled_ids(resolve_visible_sections(form.sections, scope))
            for section in form.sections:
                matrix[section.id][frequency.value] = section.id in enabled
        return matrix

    def export_frequency_workbook(
        self,
        *,
        form_types: Optional[list[FormType]] = None,
        generated_at: Optional[datetime] = None,
    ) -> tuple[str, bytes]:
        now = generated_at or datetime.utcnow()
        if form_types is None:
            selected = [form for form in self.forms.values() if form.frequency_gated]
        else:
            selected = [self.get_form(form_type) for form_type in form_types]

        workbook = Workbook()
        summary_ws = workbook.active
        summary_ws.title = "Summary"

        title_font = Font(size=16, bold=True, color="8A1C1C")
        header_font = Font(bold=True, color="1F2A24")
        muted_font = Font(color="5B6657")

        summary_ws["A1"] = "NFPA 25 inspection frequency coverage"
        summary_ws["A1"].font = title_font
        summary_ws.merge_cells("A1:D1")
        summary_ws["A2"] = now.strftime("Created %Y-%m-%d %H:%M UTC")
        summary_ws["A2"].font = muted_font
        summary_ws.merge_cells("A2:D2")

        summary_headers = ["Frequency", "Tier", "Included sections", "Description"]
        for column, header in enumerate(summary_headers, start=1):
            cell = summary_ws.cell(row=4, column=column, value=header)
            cell.font = header_font
        for row, frequency in enumerate(Frequency, start=5):
            policy = FREQUENCY_POLICIES[frequency]
            summary_ws.cell(row=row, column=1, value=frequency.value)
            summary_ws.cell(row=row, column=2, value=frequency.tier + 1)
            summary_ws.cell(row=row, column=3, value=", ".join(policy.included_section_ids))
            summary_ws.cell(row=row, column=4, value=FREQUENCY_DESCRIPTIONS[frequency])

        for column, width in [(1, 16), (2, 8), (3, 60), (4, 70)]:
            summary_ws.column_dimensions[get_column_letter(column)].width = width

        included_fill = PatternFill(start_color="E6F2EB", end_color="E6F2EB", fill_type="solid")
        for form in selected:
            matrix = self.frequency_matrix(form.form_type)
            # Worksheet titles are capped at 31 characters.
            sheet = workbook.create_sheet(form.form_type.value[:31])
            headers = ["Section", "Title"] + [frequency.value for frequency in Frequency]
            sheet.append(headers)
            for cell in sheet[1]:
                cell.font = header_font
                cell.alignment = Alignment(horizontal="center")

            for section in form.sections:
                flags = matrix[section.id]
                sheet.append(
                    [section.id, section.title]
                    + [INCLUDED_MARK if flags[frequency.value] else "" for frequency in Frequency]
                )
                for cell in sheet[sheet.max_row][2:]:
                    cell.alignment = Alignment(horizontal="center")
                    if cell.value:
                        cell.fill = included_fill

            sheet.freeze_panes = "C2"
            for column_index in range(1, len(headers) + 1):
                column_letter = get_column_letter(column_index)
                max_length = max(
                    (len(str(sheet.cell(row=row, column=column_index).value or "")) for row in range(1, sheet.max_row + 1)),
                    default=10,
                )
                sheet.column_dimensions[column_letter].width = min(max(10, max_length + 2), 42)

        timestamp = now.strftime("%Y%m%d-%H%M%S")
        filename = f"frequency-coverage-{timestamp}.xlsx"
        buffer = io.BytesIO()
        workbook.save(buffer)
        buffer.seek(0)
        return filename, buffer.getvalue()
