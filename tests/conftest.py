from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.fireforms import InspectionFormsApp
from backend.fireforms.forms import FormDefinition, FormType
from backend.fireforms.models import Section


@pytest.fixture()
def app() -> InspectionFormsApp:
    return InspectionFormsApp.create()


@pytest.fixture()
def all_sections() -> tuple[Section, ...]:
    return (
        Section("general", "General Information", "📋"),
        Section("daily", "Daily Inspections", "📅"),
        Section("weekly", "Weekly Inspections", "📊"),
        Section("monthly", "Monthly Inspections", "📈"),
        Section("quarterly", "Quarterly Inspections", "🔍"),
        Section("annual", "Annual Inspections", "📋"),
        Section("tests", "Specialized Tests", "🧪"),
    )


@pytest.fixture()
def gated_form(all_sections) -> FormDefinition:
    return FormDefinition(FormType.STANDPIPE_HOSE, "Standpipe and Hose Systems", all_sections, frequency_gated=True)


@pytest.fixture()
def section_changes() -> list[str]:
    return []
