"""
Last-known-state tracking for the watch cycle.
"""

from typing import Optional

from watcher.models import ComparisonOutcome, ComparisonResult
from utilities.logger import get_logger

logger = get_logger(__name__)


class StateTracker:
    """
    Holds the fingerprint of the most recently observed region.

    The stored fingerprint is updated before any notification is attempted,
    so it always reflects what was last observed regardless of delivery.
    """

    def __init__(self):
        self._last_fingerprint: Optional[str] = None
        self.logger = logger.bind(component="state_tracker")

    @property
    def last_fingerprint(self) -> Optional[str]:
        return self._last_fingerprint

    @property
    def has_baseline(self) -> bool:
        return self._last_fingerprint is not None

    def compare_and_update(self, new_fingerprint: str) -> ComparisonResult:
        """
        Compare a freshly computed fingerprint with the stored one.

        Args:
            new_fingerprint: Fingerprint computed in the current cycle

        Returns:
            ComparisonResult describing the transition
        """
        previous = self._last_fingerprint

        if previous is None:
            self._last_fingerprint = new_fingerprint
            self.logger.info("Baseline established", fingerprint=new_fingerprint)
            return ComparisonResult(
                outcome=ComparisonOutcome.BASELINE,
                current_fingerprint=new_fingerprint
            )

        if previous == new_fingerprint:
            return ComparisonResult(
                outcome=ComparisonOutcome.UNCHANGED,
                previous_fingerprint=previous,
                current_fingerprint=new_fingerprint
            )

        self._last_fingerprint = new_fingerprint
        self.logger.info(
            "Fingerprint changed",
            previous_fingerprint=previous,
            current_fingerprint=new_fingerprint
        )
        return ComparisonResult(
            outcome=ComparisonOutcome.CHANGED,
            previous_fingerprint=previous,
            current_fingerprint=new_fingerprint
        )

