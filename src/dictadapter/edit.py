"""
Edit sessions for dictionary adapters.

An editable adapter keeps a stack of pending-change buffers. While a session
is open, writes land in the top buffer instead of the store and reads see
the buffered values first:

    person.begin_edit()
    person.name = "Ada"          # buffered, store untouched
    person.cancel_edit()         # buffer discarded
    person.begin_edit()
    person.name = "Ada"
    person.end_edit()            # buffer flushed through the normal write path

States:
    not editable -> idle (depth 0) -> in session (depth >= 1)

Nested levels require supports_multi_level_edit; otherwise begin_edit()
inside a session is a no-op. Editable values read from the adapter during a
session are enlisted as dependencies and are committed or rolled back
together with it, exactly once per session.

Not thread-safe: callers must serialize access to one adapter.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional, Tuple

from dictadapter.contracts import ChangeTracking, Editable, has_capability
from dictadapter.conversion import unwrap_optional

logger = logging.getLogger(__name__)


class EditMixin:
    """Edit/transaction layer of DictionaryAdapter."""

    def _init_edit(self, can_edit: bool, multi_level: bool) -> None:
        self._suppress_editing_count = 0
        self._updates: Optional[List[Dict[str, Any]]] = None
        self._edit_dependencies: Optional[List[Editable]] = None
        self.supports_multi_level_edit = multi_level
        self.can_edit = can_edit

    # ========== STATE ==========

    @property
    def can_edit(self) -> bool:
        """True when the adapter is editable and editing is not suppressed."""
        return self._suppress_editing_count == 0 and self._updates is not None

    @can_edit.setter
    def can_edit(self, value: bool) -> None:
        self._updates = [] if value else None

    @property
    def is_editing(self) -> bool:
        return bool(self._updates)

    @property
    def edit_depth(self) -> int:
        return len(self._updates) if self._updates else 0

    @property
    def is_changed(self) -> bool:
        """True if the open level holds changes or any change-tracking child reports changes."""
        if self.is_editing and self._updates[-1]:
            return True

        for descriptor in self.meta:
            if not has_capability(unwrap_optional(descriptor.property_type), ChangeTracking):
                continue
            value = self.get_property(descriptor.name)
            if isinstance(value, ChangeTracking) and value.is_changed:
                return True
        return False

    # ========== SESSIONS ==========

    def begin_edit(self) -> None:
        if self.can_edit and (not self.is_editing or self.supports_multi_level_edit):
            self._updates.append({})
            logger.debug(f"{type(self).__name__}: begin edit (depth={self.edit_depth})")

    def cancel_edit(self) -> None:
        if not self.is_editing:
            return

        self._propagate_to_dependencies('cancel_edit')
        discarded = self._updates.pop()
        logger.debug(f"{type(self).__name__}: cancel edit, discarded {list(discarded)}")

    def end_edit(self) -> None:
        if not self.is_editing:
            return

        with self.suppress_editing_block():
            top = self._updates.pop()
            if top:
                logger.debug(f"{type(self).__name__}: end edit, flushing {list(top)}")
                # "changed" notifications are delivered once the whole level is applied
                with self._track_property_changes():
                    for name, value in list(top.items()):
                        self.set_property(name, value)
            self._propagate_to_dependencies('end_edit')

    def accept_changes(self) -> None:
        self.end_edit()

    def reject_changes(self) -> None:
        self.cancel_edit()

    # ========== SUPPRESSION ==========

    def suppress_editing(self) -> None:
        self._suppress_editing_count += 1

    def resume_editing(self) -> None:
        self._suppress_editing_count -= 1

    @contextmanager
    def suppress_editing_block(self) -> Generator[None, None, None]:
        """Let writes reach the store for the duration of the block."""
        self.suppress_editing()
        try:
            yield
        finally:
            self.resume_editing()

    # ========== BUFFERS ==========

    def _get_edited_property(self, name: str) -> Tuple[bool, Any]:
        """Look up a pending value, newest level first."""
        if self.is_editing:
            for level in reversed(self._updates):
                if name in level:
                    return True, level[name]
        return False, None

    def _edit_property(self, name: str, value: Any) -> bool:
        """Buffer a write in the open level; False if writes must reach the store."""
        if self.is_editing and self.can_edit:
            self._updates[-1][name] = value
            return True
        return False

    # ========== DEPENDENCIES ==========

    def _add_edit_dependency(self, dependency: Editable) -> None:
        if dependency is self or not self.is_editing:
            return
        if self._edit_dependencies is None:
            self._edit_dependencies = []
        if any(existing is dependency for existing in self._edit_dependencies):
            return
        self._edit_dependencies.append(dependency)
        dependency.begin_edit()

    def _propagate_to_dependencies(self, operation: str) -> None:
        if not self._edit_dependencies:
            return
        dependencies = list(self._edit_dependencies)
        self._edit_dependencies.clear()
        for dependency in dependencies:
            getattr(dependency, operation)()
