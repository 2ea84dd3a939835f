"""
An in-process HardwareAdapter that simulates readers within range.

Useful for exercising a ConnectionManager without hardware. Discovery results are delivered
to the listeners on the next iteration of the event loop, as a real SDK would deliver them
from its own callback.
"""
import asyncio
import logging

from readerlink.adapter import HardwareAdapter, Reader, ReaderConnectionError
from readerlink.support.events import EventSource

logger = logging.getLogger(__name__)


class SimulatedHardwareAdapter(HardwareAdapter):
    """
    :param readers: the readers in range, strongest first. Serial number strings are
        converted to Reader instances.
    :param continuous: when True, discover_readers() keeps scanning until the scan is aborted
        or a reader is connected, and readers moved into range are reported while it runs.
        Otherwise it returns as soon as the readers in range are reported.
    """

    def __init__(self, readers=(), continuous=False):
        self.nearby = [r if isinstance(r, Reader) else Reader(r) for r in readers]
        self.continuous = continuous
        self.unreachable = set()    # serial numbers that fail to connect
        self.connected = None       # the connected Reader
        self.discovering = False
        self.scans = 0              # the number of discovery scans started
        self.aborts = 0
        self._scan_ended = None
        self._device_type = None
        self._discovered = EventSource()
        self._disconnected = EventSource()

    def add_readers_discovered_listener(self, callback):
        return self._discovered.subscribe(callback)

    def add_unexpected_disconnect_listener(self, callback):
        return self._disconnected.subscribe(callback)

    async def discover_readers(self, device_type, discovery_method):
        self.discovering = True
        self.scans += 1
        self._device_type = device_type
        found = self._in_range()
        logger.debug("discovering %s readers by %s: found %d" % (device_type, discovery_method, len(found)))
        asyncio.get_running_loop().call_soon(self._deliver, found)
        if self.continuous:
            self._scan_ended = ended = asyncio.get_running_loop().create_future()
            await ended

    def _in_range(self):
        return [r for r in self.nearby if r.device_type in (None, self._device_type)]

    def _deliver(self, readers):
        if self.discovering:
            self._discovered.fire(list(readers))

    def _end_scan(self):
        self.discovering = False
        if self._scan_ended is not None and not self._scan_ended.done():
            self._scan_ended.set_result(None)
        self._scan_ended = None

    async def abort_discover_readers(self):
        self.aborts += 1
        self._end_scan()

    async def connect_reader(self, serial_number):
        self._end_scan()
        reader = next((r for r in self.nearby if r.serial_number == serial_number), None)
        if reader is None or serial_number in self.unreachable:
            raise ReaderConnectionError("unable to connect to reader %s" % serial_number)
        self.connected = reader
        return reader

    async def disconnect_reader(self):
        self.connected = None

    async def get_connected_reader(self):
        return self.connected

    def move_out_of_range(self, serial_number):
        """
        Removes the reader from range. When it is the connected reader, the unexpected
        disconnect listeners are notified.
        """
        self.nearby = [r for r in self.nearby if r.serial_number != serial_number]
        if self.connected is not None and self.connected.serial_number == serial_number:
            reader, self.connected = self.connected, None
            self._disconnected.fire(reader)

    def move_into_range(self, reader, strongest=False):
        reader = reader if isinstance(reader, Reader) else Reader(reader)
        if strongest:
            self.nearby.insert(0, reader)
        else:
            self.nearby.append(reader)
        if self.continuous and self._scan_ended is not None:
            asyncio.get_running_loop().call_soon(self._deliver, self._in_range())
