"""Textual TUI dashboard — watch verdicts arrive as repos are checked."""

from __future__ import annotations

from collections import Counter

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import DataTable, Footer, Header, Static

from gitdirt.evaluator import StatusVerdict, Verdict, scan
from gitdirt.resolver import DirectoryRef
from gitdirt.theme import counts_line, verdict_label


class CountsPanel(Static):
    """Running clean/dirty/error tally."""

    def update_counts(self, counts: Counter) -> None:
        self.update(counts_line(counts))


class VerdictTable(DataTable):
    """One row per repo, in arrival order."""

    def on_mount(self) -> None:
        self.cursor_type = "row"
        self.add_columns("Repo", "State", "Detail")

    def add_verdict(self, verdict: StatusVerdict) -> None:
        self.add_row(verdict.path, verdict_label(verdict), verdict.detail or "", key=verdict.path)


class GitdirtApp(App):
    """gitdirt — which of your repos have uncommitted work."""

    CSS = """
    #counts {
        height: auto;
        min-height: 3;
        border: solid $accent;
        padding: 0 1;
    }

    #verdicts {
        border: solid $secondary;
        height: 1fr;
    }
    """

    TITLE = "gitdirt"

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("d", "toggle_dirty", "Dirty only"),
    ]

    def __init__(self, root: DirectoryRef, scan_kwargs: dict) -> None:
        super().__init__()
        self.root = root
        self.scan_kwargs = scan_kwargs
        self.verdicts: list[StatusVerdict] = []
        self.counts: Counter = Counter()
        self.dirty_only = False
        self.done = False

    def compose(self) -> ComposeResult:
        yield Header()
        yield CountsPanel(id="counts")
        yield VerdictTable(id="verdicts")
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = f"scanning {self.root.path}..."
        self.query_one(CountsPanel).update_counts(self.counts)
        self.run_scan()

    @work(thread=True)
    def run_scan(self) -> None:
        """Run the scan in a background thread, posting each verdict to the UI."""
        scan(self.root, self._sink_from_thread, **self.scan_kwargs)
        self.call_from_thread(self._finish)

    def _sink_from_thread(self, verdict: StatusVerdict) -> None:
        self.call_from_thread(self.record_verdict, verdict)

    def record_verdict(self, verdict: StatusVerdict) -> None:
        self.verdicts.append(verdict)
        self.counts[verdict.state] += 1
        self.query_one(CountsPanel).update_counts(self.counts)
        if self._visible(verdict):
            self.query_one(VerdictTable).add_verdict(verdict)

    def _visible(self, verdict: StatusVerdict) -> bool:
        return not (self.dirty_only and verdict.state is Verdict.CLEAN)

    def _finish(self) -> None:
        self.done = True
        self.sub_title = f"{self.root.path} · {len(self.verdicts)} repos"

    def action_toggle_dirty(self) -> None:
        self.dirty_only = not self.dirty_only
        table = self.query_one(VerdictTable)
        table.clear()
        for verdict in self.verdicts:
            if self._visible(verdict):
                table.add_verdict(verdict)


def run_tui(root: DirectoryRef, scan_kwargs: dict) -> None:
    """Launch the gitdirt TUI dashboard."""
    app = GitdirtApp(root, scan_kwargs)
    app.run()
