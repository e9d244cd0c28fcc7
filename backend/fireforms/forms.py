from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from .models import Frequency, Section


class FormType(str, Enum):
    STANDPIPE_HOSE = "standpipe-hose"
    FIRE_SERVICE_MAINS = "fire-service-mains"
    DRY_SPRINKLER = "dry-sprinkler"
    PREACTION_DELUGE = "preaction-deluge"
    WATER_TANK = "water-tank"
    WEEKLY_PUMP = "weekly-pump"
    MONTHLY_PUMP = "monthly-pump"
    HYDRANT_FLOW_TEST = "hydrant-flow-test"
    UNDERGROUND_CERTIFICATE = "underground-certificate"


@dataclass(frozen=True)
class FormDefinition:
    form_type: FormType
    title: str
    sections: tuple[Section, ...]
    frequency_gated: bool = False
    frequencies: tuple[Frequency, ...] = tuple(Frequency)

    def offers(self, frequency: Optional[Frequency]) -> bool:
        """True when the form restricts its sections by this frequency."""
        return self.frequency_gated and frequency in self.frequencies


FORM_DEFINITIONS: dict[FormType, FormDefinition] = {
    FormType.STANDPIPE_HOSE: FormDefinition(
        FormType.STANDPIPE_HOSE,
        "Standpipe and Hose Systems",
        (
            Section("general", "General Information", "📋"),
            Section("daily", "Daily Inspections", "📅"),
            Section("weekly", "Weekly Inspections", "📊"),
            Section("monthly", "Monthly Inspections", "📈"),
            Section("quarterly", "Quarterly Inspections", "🔍"),
            Section("annual", "Annual Inspections", "📋"),
            Section("tests", "Specialized Tests", "🧪"),
            Section("signatures", "Signatures", "✍️"),
        ),
        frequency_gated=True,
        frequencies=(
            Frequency.DAILY,
            Frequency.WEEKLY,
            Frequency.MONTHLY,
            Frequency.QUARTERLY,
            Frequency.ANNUAL,
            Frequency.FIVE_YEAR,
        ),
    ),
    FormType.FIRE_SERVICE_MAINS: FormDefinition(
        FormType.FIRE_SERVICE_MAINS,
        "Private Fire Service Mains",
        (
            Section("general", "General Information", "📋"),
            Section("weekly", "Weekly Inspections", "📊"),
            Section("monthly", "Monthly Inspections", "📈"),
            Section("quarterly", "Quarterly Inspections", "🔍"),
            Section("semiannual", "Semiannual Inspections", "📅"),
            Section("annual", "Annual Inspections", "📋"),
            Section("fiveyears", "5-Year Inspections", "🧪"),
            Section("signatures", "Signatures", "✍️"),
        ),
        frequency_gated=True,
        frequencies=(
            Frequency.WEEKLY,
            Frequency.MONTHLY,
            Frequency.QUARTERLY,
            Frequency.SEMIANNUAL,
            Frequency.ANNUAL,
            Frequency.FIVE_YEAR,
        ),
    ),
    FormType.DRY_SPRINKLER: FormDefinition(
        FormType.DRY_SPRINKLER,
        "Dry Pipe Sprinkler Systems",
        (
            Section("general", "General Information", "📋"),
            Section("weekly", "Weekly Inspections", "📊"),
            Section("monthly", "Monthly Inspections", "📈"),
            Section("quarterly", "Quarterly Inspections", "🔍"),
            Section("annual", "Annual Inspections", "📋"),
            Section("fiveyears", "5-Year Inspections", "🔬"),
            Section("tests", "Specialized Tests", "🧪"),
        ),
    ),
    FormType.PREACTION_DELUGE: FormDefinition(
        FormType.PREACTION_DELUGE,
        "Preaction and Deluge Systems",
        (
            Section("general", "General Information", "📋"),
            Section("monthly", "Monthly Inspections", "📈"),
            Section("quarterly", "Quarterly Inspections", "🔍"),
            Section("annual", "Annual Inspections", "📋"),
            Section("fiveyears", "5-Year Inspections", "🔬"),
            Section("tests", "Specialized Tests", "🧪"),
        ),
    ),
    FormType.WATER_TANK: FormDefinition(
        FormType.WATER_TANK,
        "Water Storage Tanks",
        (
            Section("general", "General Information", "📋"),
            Section("quarterly", "Quarterly Inspections", "🔍"),
            Section("annual", "Annual Inspections", "📋"),
            Section("internal", "Internal Inspections", "🧪"),
            Section("tests", "Valve Tests", "⚙️"),
            Section("signatures", "Signatures", "✍️"),
        ),
    ),
    FormType.WEEKLY_PUMP: FormDefinition(
        FormType.WEEKLY_PUMP,
        "Fire Pump - Weekly",
        (
            Section("general", "General Information", "📋"),
            Section("pumphouse", "Pump House", "🏠"),
            Section("pumpsystems", "Pump Systems", "⚙️"),
            Section("electrical", "Electrical Systems", "⚡"),
            Section("diesel", "Diesel Engine Systems", "🚛"),
            Section("steam", "Steam System", "💨"),
            Section("exhaust", "Exhaust System", "🌪️"),
            Section("tests", "Operational Tests", "🧪"),
        ),
    ),
    FormType.MONTHLY_PUMP: FormDefinition(
        FormType.MONTHLY_PUMP,
        "Fire Pump - Monthly",
        (
            Section("general", "General Information", "📋"),
            Section("electrical-pump", "Electric Pump", "⚡"),
            Section("electrical-system", "Electrical System", "🔌"),
            Section("battery-system", "Battery System", "🔋"),
            Section("signatures", "Signatures", "✍️"),
        ),
    ),
    FormType.HYDRANT_FLOW_TEST: FormDefinition(
        FormType.HYDRANT_FLOW_TEST,
        "Hydrant Flow Test",
        (
            Section("general", "General Test Data", "📋"),
            Section("location", "Location Data", "📍"),
            Section("measurements", "Measurements and Results", "📊"),
            Section("documentation", "Documentation", "📄"),
            Section("signatures", "Signatures", "✍️"),
        ),
    ),
    FormType.UNDERGROUND_CERTIFICATE: FormDefinition(
        FormType.UNDERGROUND_CERTIFICATE,
        "Contractor's Material and Test Certificate - Underground Piping",
        (
            Section("general", "Project Information", "📋"),
            Section("components", "Components", "🔧"),
            Section("tests", "Tests", "🧪"),
            Section("hydrants-valves", "Hydrants and Valves", "🚰"),
            Section("signatures", "Signatures", "✍️"),
        ),
    ),
}


def get_form_definition(form_type: FormType) -> FormDefinition:
    return FORM_DEFINITIONS[form_type]


def parse_form_type(value: str) -> FormType:
    try:
        return FormType(value)
    except ValueError as exc:
        raise LookupError(f"Unknown form '{value}'") from exc


def validate_sections(sections: Iterable[Section]) -> tuple[Section, ...]:
    """Return the sections as a tuple, rejecting blank or repeated ids."""
    cleaned: list[Section] = []
    seen: set[str] = set()
    for section in sections:
        if not section.id or not section.id.strip():
            raise ValueError(f"Section '{section.title}' has no id")
        if section.id in seen:
            raise ValueError(f"Duplicate section id '{section.id}'")
        seen.add(section.id)
        cleaned.append(section)
    return tuple(cleaned)
