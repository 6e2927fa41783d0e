"""
Event Channel
=============

Publish/subscribe with cancellable events. ``EventTarget`` is the base class of
``Model``: observers register with ``on(type, handler)`` and the model notifies
them with ``fire(type, **payload)``, which returns the ``Event`` that was
dispatched so the caller can inspect ``is_default_prevented()`` and any payload
attribute a handler rewrote (``actual_value`` for ``beforechange``).

Usage:
    target = EventTarget()

    sub = target.on("change", lambda event: print(event.name, event.new_value))
    target.fire("change", name="x", new_value=1)

    # Cancellable events
    target.on("beforechange", lambda event: event.prevent_default())
    event = target.fire("beforechange", name="x")
    assert event.is_default_prevented()

    sub.unsubscribe()

Handlers run synchronously in subscription order. An exception raised by a
handler propagates to whoever fired the event.
"""

import weakref
from collections import defaultdict
from typing import Any, Callable, Dict, Optional

Handler = Callable[["Event"], Any]


class Event:
    """
    A dispatched event.

    Payload keywords become plain attributes, so handlers read and write them
    directly (``event.actual_value = 2``).
    """

    def __init__(self, event_type: str, target: Any = None, **payload: Any):
        self.type = event_type
        self.target = target
        self._default_prevented = False
        for key, value in payload.items():
            setattr(self, key, value)

    def prevent_default(self) -> None:
        """Cancel the default action that follows this event."""
        self._default_prevented = True

    def is_default_prevented(self) -> bool:
        return self._default_prevented

    def __repr__(self) -> str:
        fields = ", ".join(
            f"{key}={value!r}"
            for key, value in vars(self).items()
            if key not in ("type", "target", "_default_prevented")
        )
        return f"Event({self.type!r}, {fields})" if fields else f"Event({self.type!r})"


class Subscription:
    """
    Represents a subscription to one event type.

    Provides methods to pause, resume, and unsubscribe.
    """

    def __init__(
        self,
        subscriber_id: int,
        event_type: str,
        handler: Handler,
        target: "EventTarget",
    ):
        self.id = subscriber_id
        self.event_type = event_type
        self.handler = handler
        self._target_ref = weakref.ref(target)
        self.active = True

    def pause(self):
        """Pause this subscription (stop receiving events)."""
        self.active = False

    def resume(self):
        """Resume this subscription (start receiving events again)."""
        self.active = True

    def unsubscribe(self):
        """Remove this subscription from its target."""
        target = self._target_ref()
        if target is not None:
            target._remove_subscription(self)

    def notify(self, event: Event):
        if self.active:
            self.handler(event)

    def __repr__(self) -> str:
        state = "active" if self.active else "paused"
        return f"Subscription({self.id}, {self.event_type!r}, {state})"


class EventTarget:
    """
    Object that owns event subscriptions and dispatches events to them.

    Subscriptions are indexed by event type, so dispatch only touches the
    handlers registered for the fired type.
    """

    def __init__(self):
        # event type -> {subscription id -> subscription}, in subscription order
        self._subscriptions: Dict[str, Dict[int, Subscription]] = defaultdict(dict)
        self._next_sub_id = 0

    def on(self, event_type: str, handler: Handler) -> Subscription:
        """
        Subscribe ``handler`` to events of ``event_type``.

        Args:
            event_type: Name of the event, e.g. ``"change"`` or ``"change:width"``
            handler: Callable receiving the ``Event``

        Returns:
            Subscription object that can be used to unsubscribe
        """
        sub_id = self._next_sub_id
        self._next_sub_id += 1

        subscription = Subscription(sub_id, event_type, handler, self)
        self._subscriptions[event_type][sub_id] = subscription
        return subscription

    def off(self, event_type: str, handler: Optional[Handler] = None) -> int:
        """
        Remove subscriptions for ``event_type``.

        Without ``handler`` every subscription of that type is removed.

        Returns:
            Number of subscriptions removed
        """
        subscriptions = self._subscriptions.get(event_type)
        if not subscriptions:
            return 0

        removed = [
            sub_id
            for sub_id, subscription in subscriptions.items()
            if handler is None or subscription.handler == handler
        ]
        for sub_id in removed:
            del subscriptions[sub_id]
        if not subscriptions:
            del self._subscriptions[event_type]
        return len(removed)

    def fire(self, event_type: str, **payload: Any) -> Event:
        """
        Dispatch an event to every subscriber of ``event_type``.

        Handlers subscribed while the event is being dispatched do not receive
        it.

        Returns:
            The dispatched event
        """
        event = Event(event_type, target=self, **payload)

        subscriptions = self._subscriptions.get(event_type)
        if subscriptions:
            for subscription in list(subscriptions.values()):
                subscription.notify(event)
        return event

    def has_listeners(self, event_type: str) -> bool:
        return bool(self._subscriptions.get(event_type))

    def destroy_events(self) -> None:
        """Drop every subscription."""
        self._subscriptions.clear()

    def _remove_subscription(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.event_type)
        if subscriptions is None:
            return
        subscriptions.pop(subscription.id, None)
        if not subscriptions:
            del self._subscriptions[subscription.event_type]
