"""Advisory messages for spawn index calculations.

Advisories flag potential misconfiguration (years outside the assessment
window, unusual conversion constants, incomplete group metadata, excluded
spawn events) without stopping the calculation. They are collected on an
``Advisories`` object that travels with the result, and also emitted as
``SpawnIndexAdvisory`` warnings. ``quiet=True`` suppresses both; it never
suppresses validation errors.
"""

from __future__ import annotations

import warnings
from typing import Iterable, List, Optional

from spawn_index.config import YearsSection
from spawn_index.errors import SpawnIndexAdvisory
from spawn_index.utils import is_close, paste_nicely

FT2M = 0.3048


class Advisories:
    """Collector for non-fatal messages."""

    def __init__(self, quiet: bool = False):
        self.quiet = quiet
        self.messages: List[str] = []

    def add(self, message: str) -> None:
        if self.quiet:
            return
        self.messages.append(message)
        warnings.warn(message, SpawnIndexAdvisory, stacklevel=3)

    def extend(self, other: "Advisories") -> None:
        for message in other.messages:
            self.add(message)

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self):
        return iter(self.messages)


def ensure_advisories(advisories: Optional[Advisories], quiet: bool) -> Advisories:
    """Reuse the caller's collector, or start a fresh one.

    ``quiet`` wins over a passed collector: nothing is recorded or warned.
    """
    if advisories is None or quiet:
        return Advisories(quiet=quiet)
    return advisories


def check_years(
    years: Optional[Iterable[int]],
    window: YearsSection,
    advisories: Advisories,
) -> None:
    """Flag requested years outside [assess, assess_end]."""
    if years is None:
        return
    years = sorted(set(int(y) for y in years))
    early = [y for y in years if y < window.assess]
    if early:
        advisories.add(f"`years` < {window.assess}: {paste_nicely(early)}.")
    if window.assess_end is not None:
        late = [y for y in years if y > window.assess_end]
        if late:
            advisories.add(
                f"`years` > {window.assess_end}: {paste_nicely(late)}."
            )


def check_ft2m(ft2m: float, advisories: Advisories) -> None:
    if not is_close(ft2m, FT2M):
        advisories.add(f"`ft2m` is not {FT2M}.")
