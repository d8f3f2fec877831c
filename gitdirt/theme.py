"""Shared visual constants and helpers for gitdirt."""

from __future__ import annotations

from rich.text import Text

from gitdirt.evaluator import StatusVerdict, Verdict

# ── Color Palette (GitHub Dark) ─────────────────────────────────────────

SURFACE = "#161b22"
MUTED = "#8b949e"

CYAN = "#58a6ff"
GREEN = "#39d353"
YELLOW = "#e3b341"
RED = "#f85149"

VERDICT_COLORS: dict[Verdict, str] = {
    Verdict.CLEAN: GREEN,
    Verdict.DIRTY: YELLOW,
    Verdict.ERROR: RED,
}

VERDICT_ICONS: dict[Verdict, str] = {
    Verdict.CLEAN: "✔",
    Verdict.DIRTY: "●",
    Verdict.ERROR: "✖",
}


def verdict_label(verdict: StatusVerdict) -> Text:
    """Colored state label, e.g. '● dirty' or '✖ open-failed'."""
    color = VERDICT_COLORS[verdict.state]
    word = verdict.reason if verdict.is_error and verdict.reason else verdict.state.value
    return Text(f"{VERDICT_ICONS[verdict.state]} {word}", style=f"bold {color}")


def counts_line(counts: dict[Verdict, int]) -> Text:
    """One-line tally: '3 clean  1 dirty  0 errors'."""
    text = Text()
    text.append(f"  {counts.get(Verdict.CLEAN, 0)}", style=f"bold {GREEN}")
    text.append(" clean", style=MUTED)
    text.append(f"    {counts.get(Verdict.DIRTY, 0)}", style=f"bold {YELLOW}")
    text.append(" dirty", style=MUTED)
    text.append(f"    {counts.get(Verdict.ERROR, 0)}", style=f"bold {RED}")
    text.append(" errors", style=MUTED)
    return text
