"""
Patch/revert history.

Keeps the patch set of the last applied repair and can restore the code
the user authored before it. One level only: a new repair replaces the
stored one.
"""

from typing import Optional, Tuple

from code_debugger.logging import get_logger
from code_debugger.state import Patch, RepairSession, Session

logger = get_logger(__name__)


class PatchHistory:
    """Applies repair results to a session and reverts them."""

    def __init__(self, session: Session):
        self._session = session
        self._repair: Optional[RepairSession] = None

    @property
    def repair_session(self) -> Optional[RepairSession]:
        return self._repair

    @property
    def patch_set(self) -> Tuple[Patch, ...]:
        if self._repair is None:
            return ()
        return self._repair.patch_set

    @property
    def has_repair(self) -> bool:
        return self._repair is not None

    def apply(self, repair: RepairSession) -> None:
        """Show the repaired code and remember its patch set."""
        if self._repair is not None:
            logger.debug("Replacing previous repair", previous_patches=self._repair.patch_count)

        self._repair = repair
        self._session.current_code = repair.final_code
        self._session.is_showing_repaired_code = True

        logger.info(
            "Repair applied",
            patches=repair.patch_count,
            budget=repair.budget,
        )

    def revert(self) -> bool:
        """
        Restore the user's own code and drop the stored patch set.

        Returns:
            False (and changes nothing) if there is no repair to revert
        """
        if self._repair is None:
            return False

        discarded = self._repair.patch_count
        self._repair = None
        self._session.current_code = self._session.original_code
        self._session.is_showing_repaired_code = False

        logger.info("Repair reverted", discarded_patches=discarded)
        return True
