# category_tree/utils/cancellation.py
import logging
from typing import Callable, List

from ..exceptions import CancelledError

logger = logging.getLogger(__name__)


class CancellationToken:
    """Signal shared between a fetch and whoever may supersede it"""

    def __init__(self):
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self):
        """Mark the request as superseded and run registered callbacks once"""
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` on cancel; returns a function that unregisters it"""
        if self._cancelled:
            callback()
            return lambda: None
        self._callbacks.append(callback)

        def remove():
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    def raise_if_cancelled(self):
        if self._cancelled:
            raise CancelledError()
