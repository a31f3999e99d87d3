"""Notification records handed to the consuming layer."""

from __future__ import annotations

from dataclasses import dataclass

from sector_sim.domain.types import Severity


@dataclass(frozen=True)
class Notification:
    turn: int
    severity: Severity
    category: str  # "colony" | "fleet"
    title: str
    description: str
    related_ids: tuple[str, ...] = ()
