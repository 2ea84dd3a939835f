class Subscription:
    """ A handle to a handler registered with an EventSource. Calling remove() unregisters it. """

    def __init__(self, source, handler):
        self.source = source
        self.handler = handler

    def remove(self):
        """ Removes the handler from the source. Removing more than once is harmless. """
        if self.source is not None:
            self.source.remove(self.handler)
            self.source = None


class EventSource(object):

    def __init__(self):
        self._handlers = []

    def __iadd__(self, handler):
        return self.add(handler)

    def __isub__(self, handler):
        return self.remove(handler)

    def add(self, handler):
        self._handlers.append(handler)
        return self

    def remove(self, handler):
        if handler in self._handlers:
            self._handlers.remove(handler)
        return self

    def subscribe(self, handler) -> Subscription:
        """ registers the handler and returns a Subscription that can remove it again """
        self.add(handler)
        return Subscription(self, handler)

    def handlers(self):
        return tuple(self._handlers)

    def fire(self, *args, **kwargs):
        # iterate over a copy so handlers may unsubscribe while being notified
        for handler in self.handlers():
            handler(*args, **kwargs)


class EventSources:
    """
    A fixed set of named event sources. Each event kind has its own EventSource, so
    listeners only receive the events they registered for.
    """

    def __init__(self, kinds):
        self._sources = {kind: EventSource() for kind in kinds}

    @property
    def kinds(self):
        return tuple(self._sources)

    def source(self, kind) -> EventSource:
        try:
            return self._sources[kind]
        except KeyError:
            raise ValueError("unknown event '%s', expected one of %s" % (kind, "|".join(self.kinds))) from None

    def subscribe(self, kind, handler) -> Subscription:
        return self.source(kind).subscribe(handler)

    def fire(self, kind, *args, **kwargs):
        self.source(kind).fire(*args, **kwargs)
