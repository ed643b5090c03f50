"""Structural validation of a change-unit sequence.

Validation never touches a database and never stops at the first problem:
every finding is collected so one run surfaces everything that needs fixing.
Checks run in a fixed order: duplicate versions, version gaps, empty units.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence, Union

from .discovery import ChangeUnit
from .versions import format_version, version_number

DEFAULT_ORIGIN = 0


@dataclass(frozen=True)
class DuplicateVersion:
    version: str
    sources: tuple[str, ...]

    @property
    def message(self) -> str:
        return f"Duplicate version V{self.version}: {', '.join(self.sources)}"


@dataclass(frozen=True)
class VersionGap:
    """A break in the version sequence.

    ``expected`` is the first missing version; ``found`` is the next version
    actually present.
    """

    expected: str
    found: str

    @property
    def missing(self) -> list[str]:
        return [
            format_version(n)
            for n in range(version_number(self.expected), version_number(self.found))
        ]

    @property
    def message(self) -> str:
        return f"Gap detected: expected V{self.expected}, found V{self.found}"


@dataclass(frozen=True)
class EmptyChangeUnit:
    version: str

    @property
    def message(self) -> str:
        return f"V{self.version} contains no statements"


@dataclass(frozen=True)
class OrphanedEntry:
    """A ledger entry with no matching change-unit on disk (warning only)."""

    version: str
    description: str

    @property
    def message(self) -> str:
        return f"Ledger entry V{self.version} ({self.description}) has no change-unit file"


Finding = Union[DuplicateVersion, VersionGap, EmptyChangeUnit]


@dataclass
class ValidationReport:
    errors: list[Finding] = field(default_factory=list)
    warnings: list[OrphanedEntry] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.errors

    def of_type(self, kind: type) -> list:
        return [finding for finding in self.errors if isinstance(finding, kind)]


def _source_label(unit: ChangeUnit) -> str:
    if unit.source_path is not None:
        return Path(unit.source_path).name
    return unit.display_name


def find_duplicates(units: Sequence[ChangeUnit]) -> list[DuplicateVersion]:
    by_version: dict[str, list[ChangeUnit]] = defaultdict(list)
    for unit in units:
        by_version[unit.version].append(unit)

    return [
        DuplicateVersion(version, tuple(_source_label(u) for u in colliding))
        for version, colliding in sorted(by_version.items(), key=lambda kv: version_number(kv[0]))
        if len(colliding) > 1
    ]


def find_gaps(units: Sequence[ChangeUnit], origin: int = DEFAULT_ORIGIN) -> list[VersionGap]:
    """Every gap in the sorted unique versions, starting from ``origin``."""
    numbers = sorted({unit.number for unit in units})
    gaps: list[VersionGap] = []
    expected = origin
    for number in numbers:
        if number > expected:
            gaps.append(VersionGap(format_version(expected), format_version(number)))
        expected = number + 1
    return gaps


def find_empty(units: Sequence[ChangeUnit]) -> list[EmptyChangeUnit]:
    return [EmptyChangeUnit(unit.version) for unit in units if not unit.statements]


def validate(
    units: Sequence[ChangeUnit],
    origin: int = DEFAULT_ORIGIN,
) -> ValidationReport:
    """Check a change-unit sequence for duplicates, gaps and empty units.

    Args:
        units: Change-units in any order.
        origin: First version of the sequence (0 or 1 by convention).

    Returns:
        A report that is clean or carries every finding.
    """
    report = ValidationReport()
    report.errors.extend(find_duplicates(units))
    report.errors.extend(find_gaps(units, origin))
    report.errors.extend(find_empty(units))
    return report
