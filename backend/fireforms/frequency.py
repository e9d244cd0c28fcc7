"""Frequency-driven section visibility for NFPA 25 inspection forms.

Every function here is a pure derivation of its arguments. Callers that hold a
"current section" are responsible for applying the corrections reported through
``SectionResolution.changed`` (see ``navigation.FormSession``).
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence, Union

from .models import (
    Frequency,
    FrequencyInfo,
    FrequencyPolicy,
    NavigationState,
    Section,
    SectionResolution,
)

logger = logging.getLogger(__name__)

DEFAULT_SECTION_ID = "general"
FALLBACK_DESCRIPTION = "Custom frequency"

FrequencyCode = Union[Frequency, str, None]


class PolicyConfigurationError(RuntimeError):
    pass


# Section ids each tier adds on top of the tier below it.
_TIER_ADDITIONS: tuple[tuple[Frequency, tuple[str, ...]], ...] = (
    (Frequency.DAILY, ("general", "daily", "signatures")),
    (Frequency.WEEKLY, ("weekly",)),
    (Frequency.MONTHLY, ("monthly",)),
    (Frequency.QUARTERLY, ("quarterly",)),
    (Frequency.SEMIANNUAL, ("semiannual",)),
    (Frequency.ANNUAL, ("annual", "tests")),
    (Frequency.FIVE_YEAR, ("fiveyears",)),
)

FREQUENCY_DESCRIPTIONS: Mapping[Frequency, str] = MappingProxyType(
    {
        Frequency.DAILY: "Basic daily inspections (applicable during cold weather)",
        Frequency.WEEKLY: "Includes daily inspections plus weekly valve and system checks",
        Frequency.MONTHLY: "Includes weekly inspections plus monthly equipment checks",
        Frequency.QUARTERLY: "Includes monthly inspections plus specialized quarterly checks",
        Frequency.SEMIANNUAL: "Includes quarterly inspections plus semiannual checks",
        Frequency.ANNUAL: "Complete inspection including annual tests and specialized checks",
        Frequency.FIVE_YEAR: "Full 5-year inspection with every test and check",
    }
)


def _build_policies() -> Mapping[Frequency, FrequencyPolicy]:
    policies: dict[Frequency, FrequencyPolicy] = {}
    included: list[str] = []
    for frequency, additions in _TIER_ADDITIONS:
        included.extend(section_id for section_id in additions if section_id not in included)
        policies[frequency] = FrequencyPolicy(
            frequency=frequency,
            included_section_ids=tuple(included),
            cumulative=True,
        )
    return MappingProxyType(policies)


FREQUENCY_POLICIES: Mapping[Frequency, FrequencyPolicy] = _build_policies()


def check_cumulative_policies(
    policies: Mapping[Frequency, FrequencyPolicy] = FREQUENCY_POLICIES,
) -> None:
    """Raise ``PolicyConfigurationError`` unless every tier contains the tier below it."""
    ordered = sorted(policies.values(), key=lambda policy: policy.frequency.tier)
    for lower, higher in zip(ordered, ordered[1:]):
        if not higher.cumulative:
            continue
        missing = set(lower.included_section_ids) - set(higher.included_section_ids)
        if missing:
            raise PolicyConfigurationError(
                f"Frequency '{higher.frequency.value}' is missing sections "
                f"{sorted(missing)} required by '{lower.frequency.value}'"
            )


check_cumulative_policies()


def get_policy(frequency: FrequencyCode) -> Optional[FrequencyPolicy]:
    parsed = Frequency.parse(frequency)
    if parsed is None:
        if frequency:
            logger.warning("Unknown frequency code %r; showing every section", frequency)
        return None
    return FREQUENCY_POLICIES.get(parsed)


def has_frequency_restriction(frequency: FrequencyCode) -> bool:
    return Frequency.parse(frequency) in FREQUENCY_POLICIES


def resolve_visible_sections(
    all_sections: Sequence[Section],
    frequency: FrequencyCode,
) -> tuple[Section, ...]:
    policy = get_policy(frequency)
    if policy is None:
        return tuple(all_sections)
    included = set(policy.included_section_ids)
    return tuple(section for section in all_sections if section.id in included)


def resolve_enabled_ids(visible_sections: Iterable[Section]) -> frozenset[str]:
    return frozenset(section.id for section in visible_sections)


def resolve_current_section(
    requested_current: Optional[str],
    enabled_ids: frozenset[str],
    visible_sections: Sequence[Section],
) -> SectionResolution:
    if requested_current is not None and requested_current in enabled_ids:
        return SectionResolution(section_id=requested_current, changed=False)
    if visible_sections:
        section_id = visible_sections[0].id
    else:
        section_id = DEFAULT_SECTION_ID
    return SectionResolution(section_id=section_id, changed=section_id != requested_current)


def is_section_enabled(section_id: str, enabled_ids: frozenset[str]) -> bool:
    return section_id in enabled_ids


def is_section_visible(section_id: str, enabled_ids: frozenset[str]) -> bool:
    return section_id in enabled_ids


def resolve_navigation(
    all_sections: Sequence[Section],
    frequency: FrequencyCode,
    requested_current: Optional[str],
) -> NavigationState:
    visible = resolve_visible_sections(all_sections, frequency)
    enabled = resolve_enabled_ids(visible)
    resolution = resolve_current_section(requested_current, enabled, visible)
    logger.debug(
        "Resolved %d/%d sections for frequency %r (current=%s)",
        len(visible),
        len(all_sections),
        frequency,
        resolution.section_id,
    )
    return NavigationState(
        visible_sections=visible,
        enabled_section_ids=enabled,
        current_section=resolution.section_id,
        changed=resolution.changed,
        has_frequency_restriction=has_frequency_restriction(frequency),
    )


def describe_frequency(
    frequency: FrequencyCode,
    all_sections: Optional[Sequence[Section]] = None,
) -> Optional[FrequencyInfo]:
    """Help text for a frequency; ``None`` when no frequency is selected.

    When ``all_sections`` is given, the included ids are limited to the sections
    that form actually declares, in the form's order.
    """
    if frequency is None or not str(frequency).strip():
        return None
    parsed = Frequency.parse(frequency)
    if parsed is None:
        code = frequency.value if isinstance(frequency, Frequency) else str(frequency).strip()
        return FrequencyInfo(frequency=code, included_sections=(), description=FALLBACK_DESCRIPTION)

    policy = FREQUENCY_POLICIES[parsed]
    if all_sections is None:
        included = policy.included_section_ids
    else:
        included = tuple(section.id for section in resolve_visible_sections(all_sections, parsed))
    return FrequencyInfo(
        frequency=parsed.value,
        included_sections=included,
        description=FREQUENCY_DESCRIPTIONS.get(parsed, FALLBACK_DESCRIPTION),
    )
