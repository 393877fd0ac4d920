"""
Undo/redo history of mask states.
"""

from typing import List, Optional

from ..models import MaskSet


class HistoryManager:
    """
    Linear history ``past + present + future`` of MaskSet snapshots.

    MaskSets are immutable all the way down, so storing the value is a full
    copy. Snapshots are taken once per completed gesture, never per pointer
    move.
    """

    def __init__(self, initial: Optional[MaskSet] = None):
        self._past: List[MaskSet] = []
        self._present: MaskSet = initial if initial is not None else MaskSet()
        self._future: List[MaskSet] = []

    @property
    def present(self) -> MaskSet:
        return self._present

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    def __len__(self) -> int:
        return len(self._past) + 1 + len(self._future)

    def snapshot(self, mask_set: MaskSet) -> None:
        """Record a new present state and drop anything that could be redone."""
        self._past.append(self._present)
        self._present = mask_set
        self._future.clear()

    def undo(self) -> Optional[MaskSet]:
        """Step back; returns the new present or None when nothing to undo."""
        if not self._past:
            return None
        self._future.insert(0, self._present)
        self._present = self._past.pop()
        return self._present

    def redo(self) -> Optional[MaskSet]:
        """Step forward; returns the new present or None when nothing to redo."""
        if not self._future:
            return None
        self._past.append(self._present)
        self._present = self._future.pop(0)
        return self._present

