"""
Property change notification for dictionary adapters.

Listeners are plain callables invoked synchronously on the caller's thread
with (sender, event):

- "changing" listeners run before a write and may veto it by setting
  event.cancel = True (or by returning False)
- "changed" listeners run after a successful write

Notifications are only raised for contracts extending Notifying. A failing
listener is logged and does not stop delivery to the others.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generator, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class PropertyChangingEvent:
    """Raised before a property is written; set cancel to veto the write."""
    name: str
    old_value: Any
    new_value: Any
    cancel: bool = False


@dataclass(frozen=True)
class PropertyChangedEvent:
    """Raised after a property was written."""
    name: str
    old_value: Any = None
    new_value: Any = None


ChangingListener = Callable[[Any, PropertyChangingEvent], Optional[bool]]
ChangedListener = Callable[[Any, PropertyChangedEvent], None]


class NotifyMixin:
    """Notification layer of DictionaryAdapter."""

    def _init_notify(self, can_notify: bool) -> None:
        self.can_notify = can_notify
        self._suppress_notification_count = 0
        self._changing_listeners: List[ChangingListener] = []
        self._changed_listeners: List[ChangedListener] = []
        # Pending "changed" events while a batch of writes is applied
        self._deferred_changes: Optional[List[PropertyChangedEvent]] = None
        # property name -> (child, forwarding listener)
        self._composed_children: Dict[str, Tuple[Any, ChangedListener]] = {}

    @property
    def should_notify(self) -> bool:
        return self.can_notify and self._suppress_notification_count == 0

    # ========== LISTENERS ==========

    def add_property_changing_listener(self, listener: ChangingListener) -> None:
        """Subscribe to vetoable "changing" events."""
        if listener not in self._changing_listeners:
            self._changing_listeners.append(listener)

    def remove_property_changing_listener(self, listener: ChangingListener) -> None:
        if listener in self._changing_listeners:
            self._changing_listeners.remove(listener)

    def add_property_changed_listener(self, listener: ChangedListener) -> None:
        """Subscribe to "changed" events."""
        if listener not in self._changed_listeners:
            self._changed_listeners.append(listener)

    def remove_property_changed_listener(self, listener: ChangedListener) -> None:
        if listener in self._changed_listeners:
            self._changed_listeners.remove(listener)

    # ========== SUPPRESSION ==========

    def suppress_notifications(self) -> None:
        self._suppress_notification_count += 1

    def resume_notifications(self) -> None:
        self._suppress_notification_count -= 1

    @contextmanager
    def suppress_notifications_block(self) -> Generator[None, None, None]:
        self.suppress_notifications()
        try:
            yield
        finally:
            self.resume_notifications()

    # ========== DISPATCH ==========

    def _notify_property_changing(self, name: str, old_value: Any, new_value: Any) -> bool:
        """Fire "changing"; returns False if a listener vetoed the write."""
        if not self.should_notify:
            return True

        event = PropertyChangingEvent(name, old_value, new_value)
        for listener in list(self._changing_listeners):
            try:
                if listener(self, event) is False:
                    event.cancel = True
            except Exception as e:
                logger.warning(f"Error in property changing listener for {name!r}: {e}")
            if event.cancel:
                logger.debug(f"Write to {name!r} vetoed")
                return False
        return True

    def _notify_property_changed(self, name: str, old_value: Any = None, new_value: Any = None) -> None:
        if not self.should_notify:
            return

        event = PropertyChangedEvent(name, old_value, new_value)
        if self._deferred_changes is not None:
            self._deferred_changes.append(event)
        else:
            self._fire_property_changed(event)

    def _fire_property_changed(self, event: PropertyChangedEvent) -> None:
        for listener in list(self._changed_listeners):
            try:
                listener(self, event)
            except Exception as e:
                logger.warning(f"Error in property changed listener for {event.name!r}: {e}")

    @contextmanager
    def _track_property_changes(self) -> Generator[None, None, None]:
        """Hold "changed" events until the block completes, then deliver them in order."""
        if self._deferred_changes is not None:
            yield
            return

        self._deferred_changes = []
        try:
            yield
        finally:
            pending, self._deferred_changes = self._deferred_changes, None
            for event in pending:
                self._fire_property_changed(event)

    def _compose_child_notifications(self, name: str, child: Any) -> None:
        """Re-raise a nested value's "changed" events as changes of property name."""
        if not self.can_notify:
            return

        composed = self._composed_children.get(name)
        if composed is not None:
            if composed[0] is child:
                return
            old_child, old_listener = composed
            old_child.remove_property_changed_listener(old_listener)
            del self._composed_children[name]

        if not isinstance(child, NotifyMixin) or not child.can_notify:
            return

        def forward(sender, event):
            self._notify_property_changed(name, child, child)

        child.add_property_changed_listener(forward)
        self._composed_children[name] = (child, forward)
