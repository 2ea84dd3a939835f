"""
The boundary to the hardware SDK that performs the radio discovery and device I/O.

The ConnectionManager only ever talks to the hardware through a HardwareAdapter. Adapter
operations are coroutines, apart from the two listener registrations, which return a
Subscription handle. Listener callbacks are expected to be invoked on the event loop
that runs the manager.
"""
from abc import ABCMeta, abstractmethod

from readerlink.support.events import Subscription
from readerlink.support.mixins import ValueObjectMixin

# the baseline device category and discovery method used when none is configured
DEVICE_TYPE_CHIPPER_2X = 'chipper2x'
DISCOVERY_METHOD_BLUETOOTH_PROXIMITY = 'bluetooth_proximity'


class ReaderError(Exception):
    """ Base class for errors raised by readerlink. """


class ReaderConnectionError(ReaderError):
    """ Indicates a connection to a reader could not be established. """


class ConfigurationError(ReaderError, ValueError):
    """ Indicates the manager was configured with invalid values. """


class Reader(ValueObjectMixin):
    """
    A reader as reported by the adapter, either discovered by a scan or connected.
    :param serial_number: the identifier of the reader
    :param device_type: the device category, when known
    :param label: a human-readable name, when known
    """

    def __init__(self, serial_number, device_type=None, label=None):
        self.serial_number = serial_number
        self.device_type = device_type
        self.label = label


class HardwareAdapter(metaclass=ABCMeta):
    """ The capabilities of the hardware SDK that the connection manager consumes. """

    @abstractmethod
    async def discover_readers(self, device_type, discovery_method):
        """
        Starts a discovery scan. The discovered readers are not returned; they are delivered
        in batches, ordered strongest first, to the readers-discovered listeners.
        """
        raise NotImplementedError

    @abstractmethod
    async def abort_discover_readers(self):
        """ Cancels any in-flight discovery scan. """
        raise NotImplementedError

    @abstractmethod
    async def connect_reader(self, serial_number) -> Reader:
        """
        Connects to the reader with the given serial number.
        :return: the connected reader
        :raises ReaderConnectionError: when the connection cannot be established
        """
        raise NotImplementedError

    @abstractmethod
    async def disconnect_reader(self):
        """ Disconnects the connected reader. Does nothing when no reader is connected. """
        raise NotImplementedError

    @abstractmethod
    async def get_connected_reader(self):
        """ :return: the connected Reader, or None """
        raise NotImplementedError

    @abstractmethod
    def add_readers_discovered_listener(self, callback) -> Subscription:
        """ Registers a callable that receives each list of discovered readers. """
        raise NotImplementedError

    @abstractmethod
    def add_unexpected_disconnect_listener(self, callback) -> Subscription:
        """ Registers a callable that is notified when the reader disconnects unexpectedly. """
        raise NotImplementedError
