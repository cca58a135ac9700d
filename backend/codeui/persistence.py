"""Debounced persistence of the {selector: {property: value}} style map"""

import json
import time
from typing import Callable, Dict, Optional

import config

from codeui import db
from codeui.logger import get_logger
from codeui.models import StyleValue

logger = get_logger(__name__)

PersistedStyles = Dict[str, Dict[str, StyleValue]]


class StylePersistence:
    """
    Keeps the style map in memory and writes it to storage once updates have
    been quiet for ``debounce_ms``. Storage is best-effort: read and write
    failures are logged and never raised.

    ``storage`` is anything with ``get``/``set``/``delete`` (the ``db``
    module by default).
    """

    def __init__(
        self,
        storage=db,
        storage_key: Optional[str] = None,
        debounce_ms: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        enabled: bool = True,
    ):
        self.storage = storage
        self.storage_key = storage_key or config.STYLE_STORAGE_KEY
        if debounce_ms is None:
            debounce_ms = config.STYLE_PERSIST_DEBOUNCE_MS
        self.debounce = debounce_ms / 1000.0
        self.enabled = enabled
        self._clock = clock
        self._deadline: Optional[float] = None
        self.styles: PersistedStyles = {}

        if enabled:
            self._load()

    def _load(self):
        try:
            stored = self.storage.get(self.storage_key)
            if stored:
                self.styles = json.loads(stored)
        except Exception as e:
            logger.warning(f"Failed to load persisted styles: {str(e)}")

    def save_styles(self, styles: PersistedStyles):
        if not self.enabled:
            return
        self.styles = styles
        self._deadline = self._clock() + self.debounce

    def update_style(self, selector: str, prop: str, value: StyleValue):
        self.poll()
        updated = dict(self.styles)
        updated[selector] = {**self.styles.get(selector, {}), prop: value}
        self.save_styles(updated)

    def get_styles(self, selector: str) -> Dict[str, StyleValue]:
        return dict(self.styles.get(selector, {}))

    def clear_styles(self):
        self.styles = {}
        self._deadline = None
        try:
            self.storage.delete(self.storage_key)
        except Exception as e:
            logger.warning(f"Failed to clear persisted styles: {str(e)}")

    def poll(self) -> bool:
        """Write to storage if the debounce window has elapsed"""
        if self._deadline is not None and self._clock() >= self._deadline:
            return self.flush()
        return False

    def flush(self) -> bool:
        if self._deadline is None:
            return False
        self._deadline = None
        try:
            self.storage.set(self.storage_key, json.dumps(self.styles))
            return True
        except Exception as e:
            logger.warning(f"Failed to persist styles: {str(e)}")
            return False
