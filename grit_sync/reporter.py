"""ReportPresenter: renders the final sync report."""

from __future__ import annotations

import random
from pathlib import Path

from grit_sync.models import OutcomeStatus, RepositoryOutcome, SyncReport
from grit_sync.output import SECTION_WIDTH
from grit_sync.protocols import OutputHandler

MARINE_EMOJIS = (
    "\U0001f420", "\U0001f421", "\U0001f988", "\U0001f419", "\U0001f980",
    "\U0001f41a", "\U0001f433", "\U0001f42c", "\U0001f9ad", "\U0001f41f",
)

CHEERFUL_MESSAGES = (
    "Everything's shipshape and Bristol fashion!",
    "Smooth sailing ahead!",
    "High five for being up-to-date!",
    "You're in sync with the universe!",
    "Git-tastic work!",
    "You've got your ducks in a row!",
    "Synced and ready to rock!",
    "Smooth as butter!",
    "Repo perfection achieved!",
    "Commits so clean, they sparkle!",
    "You're a syncing machine!",
    "Repository bliss achieved!",
)

STATUS_GLYPHS = {
    OutcomeStatus.SUCCESS: "\u2705",
    OutcomeStatus.SKIPPED: "\u26a0\ufe0f ",
    OutcomeStatus.FAILED: "\u274c",
}


def display_path(path: Path) -> str:
    """Shorten paths under the home directory to ~/..."""
    try:
        return str(Path("~") / path.relative_to(Path.home()))
    except ValueError:
        return str(path)


class ReportPresenter:
    """Renders a finished SyncReport with color-coded outcomes"""

    def __init__(self, output: OutputHandler, rng: random.Random | None = None):
        self.output = output
        self._rng = rng or random.Random()

    def print_summary(self, report: SyncReport):
        """Print one line per repository, the totals, and remediation hints."""
        title = f"{report.action.name} REPORT"
        self.output.section("\u2554" + "=" * SECTION_WIDTH + "\u2557")
        self.output.info("\u2551" + title.center(SECTION_WIDTH) + "\u2551")
        self.output.info("\u255a" + "=" * SECTION_WIDTH + "\u255d")
        self.output.info("")

        if not len(report):
            self.output.info("No repositories to process.")
        for path, outcome in report:
            self._print_entry(path, outcome)

        self.output.info("")
        self.output.info("=" * SECTION_WIDTH)
        self._print_totals(report)

        if report.interrupted:
            self.output.warning("\u26a0 Interrupted: remaining repositories were not processed")

        if report.has_failures():
            self.output.error("\U0001f534 Some repositories failed - see the hints above")
        elif report.all_succeeded():
            self._cheer()

    def _print_entry(self, path: Path, outcome: RepositoryOutcome):
        glyph = STATUS_GLYPHS[outcome.status]
        line = f"{glyph} {display_path(path)}: "
        if outcome.status is OutcomeStatus.SUCCESS:
            self.output.success(line + outcome.message)
        elif outcome.status is OutcomeStatus.SKIPPED:
            self.output.warning(line + f"skipped ({outcome.message})")
        else:
            kind = outcome.error_kind.name if outcome.error_kind else "ERROR"
            self.output.error(line + f"{kind} - {outcome.message}")
            if outcome.hint:
                self.output.info(f"\u21b3 {outcome.hint}", indent=2)

    def _print_totals(self, report: SyncReport):
        succeeded = len(report.by_status(OutcomeStatus.SUCCESS))
        skipped = len(report.by_status(OutcomeStatus.SKIPPED))
        failed = len(report.by_status(OutcomeStatus.FAILED))
        self.output.info(
            f"Total: {len(report)}  succeeded: {succeeded}  skipped: {skipped}  failed: {failed}"
        )

    def _cheer(self):
        emoji = self._rng.choice(MARINE_EMOJIS)
        self.output.info("=" * SECTION_WIDTH)
        self.output.success(f"{emoji} {self._rng.choice(CHEERFUL_MESSAGES)}")
        self.output.info("=" * SECTION_WIDTH)
