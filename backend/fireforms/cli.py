"""Command-line helpers for inspecting frequency-driven form navigation."""

from __future__ import annotations

import argparse
import logging
import textwrap
from pathlib import Path
from typing import Optional, Sequence

from .app import InspectionFormsApp
from .forms import FormType, parse_form_type
from .navigation import FormSession


def _summarize(session: FormSession) -> str:
    state = session.state
    lines = [f"{session.form.title} ({session.form.form_type.value})"]
    frequency = session.frequency_code if session.form.frequency_gated else None
    lines.append(f"Frequency: {frequency or 'not selected'}")
    for section in session.sections:
        if section.id == state.current_section:
            marker = ">"
        elif state.is_section_enabled(section.id):
            marker = " "
        else:
            marker = "x"
        lines.append(f"  {marker} {section.id:<20} {section.title}")
    position, total = session.progress
    lines.append(f"Current section: {state.current_section} ({position} of {total})")
    if state.has_frequency_restriction:
        lines.append(f"{len(state.visible_sections)} active, {len(session.hidden_sections)} hidden")
    return "\n".join(lines)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Show which inspection form sections a frequency unlocks.")
    parser.add_argument(
        "--form",
        default=FormType.STANDPIPE_HOSE.value,
        choices=[form_type.value for form_type in FormType],
        help="Form to resolve (default: %(default)s)",
    )
    parser.add_argument("--frequency", default=None, help="Frequency code, e.g. mensal or monthly")
    parser.add_argument("--section", default=None, help="Section the wizard is currently on")
    parser.add_argument(
        "--export",
        type=Path,
        default=None,
        help="Write the frequency coverage workbook to this directory or .xlsx path",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: %(default)s)",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    app = InspectionFormsApp.create()
    if args.export is not None:
        filename, data = app.export_frequency_workbook()
        target = args.export if args.export.suffix == ".xlsx" else args.export / filename
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        print(f"Wrote {target}")
        return 0

    session = app.open_session(
        parse_form_type(args.form),
        frequency=args.frequency,
        current_section=args.section,
    )
    print(_summarize(session))
    info = None
    if session.form.frequency_gated:
        info = app.describe_frequency(session.frequency, form_type=session.form.form_type)
    if info is not None:
        print(textwrap.fill(info.description, width=78))
    return 0


if __name__ == "__main__":  # pragma: no cover - script entry point
    raise SystemExit(main())
