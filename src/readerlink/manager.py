import asyncio
import logging

from readerlink.adapter import DEVICE_TYPE_CHIPPER_2X, DISCOVERY_METHOD_BLUETOOTH_PROXIMITY, HardwareAdapter
from readerlink.policy import DESIRED_READER_ANY, ConnectionPolicy, select_reader
from readerlink.store import MemoryStore, PersistentStore
from readerlink.support.events import EventSources, Subscription

logger = logging.getLogger(__name__)

# the key under which the persisted reader serial number is stored
STORAGE_KEY = 'readerlink.persisted_serial_number'

EVENT_CONNECTION_ERROR = 'connection_error'
EVENT_PERSISTED_READER_NOT_FOUND = 'persisted_reader_not_found'
EVENT_READERS_DISCOVERED = 'readers_discovered'
EVENT_READER_PERSISTED = 'reader_persisted'
EVENT_LOG = 'log'

EVENTS = (EVENT_CONNECTION_ERROR, EVENT_PERSISTED_READER_NOT_FOUND, EVENT_READERS_DISCOVERED,
          EVENT_READER_PERSISTED, EVENT_LOG)


class ConnectionManager:
    """
    Maintains a connection to a single reader, chosen from the readers discovered by the
    hardware adapter according to a ConnectionPolicy.

    The manager tracks a desired reader: None when no connection is wanted, a serial number,
    or DESIRED_READER_ANY. Discovery results are matched against the desired reader and the
    policy to decide whether to connect, and the outcome is persisted (for persisting
    policies) and published as events.

    Two guards keep overlapping triggers from issuing duplicate hardware calls:
    - the connect sequence (abort, disconnect, start a scan) runs in a single task. A connect()
      while it runs requests one more pass instead of starting a parallel sequence.
    - only one connect call to the adapter is in flight at a time. Discovery results that
      arrive meanwhile are published but not acted on.

    Under the AUTO and MANUAL policies disconnect() leaves the desired reader unchanged, so a
    later unexpected disconnect reconnects to it. Unexpected disconnects start the connect
    sequence under every policy, MANUAL included.

    :param adapter: the HardwareAdapter that performs discovery and connection
    :param store: the PersistentStore for the persisted reader. Defaults to a MemoryStore.
    :param policy: a ConnectionPolicy, or its string value
    :param device_type: the type of reader to discover
    :param discovery_method: the method used to discover readers
    """

    # post-connect hooks, keyed by policy
    after_connect_hooks = {
        ConnectionPolicy.PERSIST: '_persist_connected_reader',
        ConnectionPolicy.PERSIST_MANUAL: '_persist_connected_reader',
    }

    def __init__(self, adapter: HardwareAdapter, store: PersistentStore=None, policy=None,
                 device_type=None, discovery_method=None):
        self.policy = ConnectionPolicy.parse(policy)
        self.adapter = adapter
        self.store = store if store is not None else MemoryStore()
        self.device_type = device_type or DEVICE_TYPE_CHIPPER_2X
        self.discovery_method = discovery_method or DISCOVERY_METHOD_BLUETOOTH_PROXIMITY
        self.events = EventSources(EVENTS)
        self.desired_reader = None
        self._sequence = None           # the task running the connect sequence
        self._sequence_again = False    # run the connect sequence once more when the current pass ends
        self._connecting = None         # the task awaiting the adapter connect call
        self._tasks = set()             # background tasks: discovery scans and adapter callback follow-ups
        self.subscriptions = [
            adapter.add_readers_discovered_listener(self.on_readers_discovered),
            adapter.add_unexpected_disconnect_listener(self.on_unexpected_disconnect),
        ]

    def add_listener(self, event, handler) -> Subscription:
        """
        Registers a handler for one of the EVENTS.
        :return: a Subscription whose remove() unregisters the handler
        """
        return self.events.subscribe(event, handler)

    def _emit(self, event, *args):
        self.events.fire(event, *args)

    def _log(self, message):
        logger.info(message)
        self._emit(EVENT_LOG, message)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task):
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            e = task.exception()
            logger.error("unexpected exception '%s' in %s" % (e, task), exc_info=e)

    def on_readers_discovered(self, readers):
        """
        Receives a batch of discovered readers from the adapter and decides whether to connect.
        :return: the task that follows up on the batch, or None when there is nothing to do
        """
        self._emit(EVENT_READERS_DISCOVERED, readers)

        # not in a connecting phase: the readers are only published, until connect() is called.
        if not readers or not self.desired_reader:
            return None

        if self._connecting is not None:
            logger.debug("connection to a reader in progress, ignoring %d discovered readers" % len(readers))
            return None

        reader = select_reader(self.policy, self.desired_reader, readers)
        if reader is None:
            # none of the readers is allowed, keep searching
            self._emit(EVENT_PERSISTED_READER_NOT_FOUND, readers)
            return self._spawn(self.connect())

        self._connecting = self._spawn(self._connect_reader(reader.serial_number))
        return self._connecting

    async def _connect_reader(self, serial_number):
        error = None
        try:
            reader = await self.adapter.connect_reader(serial_number)
        except Exception as e:
            error = e
        finally:
            self._connecting = None

        if error is not None:
            if logger.isEnabledFor(logging.DEBUG):
                logger.exception(error)
            logger.info("Unable to connect to reader %s: %s" % (serial_number, error))
            self._emit(EVENT_CONNECTION_ERROR, error)
            if self.policy.retries:
                await self.connect()
            return None

        logger.info("reader connected: %s" % reader.serial_number)
        self.desired_reader = reader.serial_number
        await self._after_connect(reader)
        return reader

    async def _after_connect(self, reader):
        hook = self.after_connect_hooks.get(self.policy)
        if hook is not None:
            await getattr(self, hook)(reader)

    async def _persist_connected_reader(self, reader):
        await self.set_persisted_reader_serial_number(reader.serial_number)

    def on_unexpected_disconnect(self, *args):
        """ Attempts to reconnect when the reader disconnects unexpectedly. """
        logger.info("reader disconnected unexpectedly")
        return self._spawn(self.connect())

    async def connect(self, serial_number=None):
        """
        Starts searching for a reader to connect to, returning once the scan has begun. The
        connection itself is established asynchronously, when the discovery results arrive.
        :param serial_number: the reader to connect to. When not given, the previously desired
            reader is used, or any reader if there is none.
        """
        self._log('Connecting to reader: "%s"...' % (serial_number or DESIRED_READER_ANY))

        if serial_number:
            self.desired_reader = serial_number
        if not self.desired_reader:
            self.desired_reader = DESIRED_READER_ANY

        if self._sequence is not None and not self._sequence.done():
            logger.debug("connect sequence in progress, searching again when it completes")
            self._sequence_again = True
        else:
            self._sequence = asyncio.ensure_future(self._run_connect_sequence())
        await asyncio.shield(self._sequence)

    async def _run_connect_sequence(self):
        while True:
            self._sequence_again = False
            await self._connect_sequence()
            if not self._sequence_again:
                return

    async def _connect_sequence(self):
        # already connected to the desired reader, such as after a restart
        if await self.get_reader() is not None:
            logger.debug("already connected to reader %s" % self.desired_reader)
            return

        await self.adapter.abort_discover_readers()     # end any pending search
        await self.adapter.disconnect_reader()          # drop any reader that isn't the desired one
        await self._start_scan()

    async def _start_scan(self):
        """
        Starts a discovery scan in the background. The adapter may keep discover_readers()
        running for as long as the scan lasts, until it is aborted, so only a failure raised
        as the scan begins is passed to the caller.
        """
        scan = self._spawn(self.adapter.discover_readers(self.device_type, self.discovery_method))
        await asyncio.sleep(0)      # let the scan begin
        if scan.done() and not scan.cancelled():
            scan.result()

    async def discover(self):
        """ Searches for readers without connecting to any of them. """
        await self.adapter.abort_discover_readers()
        await self._start_scan()

    async def disconnect(self):
        """
        Disconnects the reader. Persisting policies also forget the persisted reader, so it is
        not reconnected on the next start.
        """
        if self.policy.persists:
            await self.set_persisted_reader_serial_number(None)
            self.desired_reader = None
        await self.adapter.disconnect_reader()
        logger.info("reader disconnected")

    async def get_reader(self):
        """ :return: the connected reader when it is the desired reader, otherwise None """
        reader = await self.adapter.get_connected_reader()
        return reader if reader is not None and reader.serial_number == self.desired_reader else None

    async def get_persisted_reader_serial_number(self):
        return await self.store.get_item(STORAGE_KEY)

    async def set_persisted_reader_serial_number(self, serial_number):
        """ Stores the serial number, or removes the stored value when serial_number is empty. """
        if not serial_number:
            serial_number = None
            await self.store.remove_item(STORAGE_KEY)
        else:
            await self.store.set_item(STORAGE_KEY, serial_number)
        self._emit(EVENT_READER_PERSISTED, serial_number)

    async def start(self):
        """
        Connects according to the policy: AUTO connects to any reader, PERSIST to the
        persisted reader or any reader, PERSIST_MANUAL only to a persisted reader.
        MANUAL waits for connect() to be called.
        """
        if self.policy is ConnectionPolicy.AUTO:
            await self.connect()
        elif self.policy.persists:
            serial_number = await self.get_persisted_reader_serial_number()
            if self.policy is ConnectionPolicy.PERSIST or serial_number:
                await self.connect(serial_number)
            else:
                logger.debug("no persisted reader, waiting for connect()")

    async def stop(self):
        """ Cancels pending work, disconnects the reader and releases the adapter listeners. """
        pending = [t for t in self._tasks | {self._sequence} if t is not None and not t.done()]
        for task in pending:
            task.cancel()
        await self.adapter.disconnect_reader()
        for subscription in self.subscriptions:
            subscription.remove()
        self.subscriptions = []


def create_connection_manager(adapter: HardwareAdapter, options, store: PersistentStore=None):
    """
    Creates a ConnectionManager from a mapping of options, such as the one returned by
    readerlink.config.config.connection_options().
    """
    return ConnectionManager(adapter, store, **options)
