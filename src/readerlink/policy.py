from enum import Enum

from readerlink.adapter import ConfigurationError

# the desired reader value that accepts whichever reader is strongest
DESIRED_READER_ANY = 'any'


class ConnectionPolicy(Enum):
    """
    How aggressively the manager connects automatically, and whether the chosen reader is
    remembered across restarts.
    """
    AUTO = 'auto'
    PERSIST = 'persist'
    MANUAL = 'manual'
    PERSIST_MANUAL = 'persist-manual'

    @classmethod
    def parse(cls, value):
        """
        Converts a policy or its string value to a ConnectionPolicy.
        :raises ConfigurationError: when the value is not one of the known policies
        """
        try:
            return cls(value)
        except ValueError:
            raise ConfigurationError('Invalid policy: got "%s", expects "%s"' %
                                     (value, "|".join(p.value for p in cls))) from None

    @property
    def persists(self) -> bool:
        """ the connected reader is written to the store, and restored on start """
        return self in (ConnectionPolicy.PERSIST, ConnectionPolicy.PERSIST_MANUAL)

    @property
    def retries(self) -> bool:
        """ a failed connection attempt restarts the search """
        return self is not ConnectionPolicy.MANUAL


def select_reader(policy: ConnectionPolicy, desired, readers):
    """
    Chooses the reader to connect to from a batch of discovered readers.

    The desired reader is preferred when it is in the batch. Otherwise the first (strongest)
    reader is chosen when the policy connects automatically, when a persisting policy has
    nothing desired yet, or when any reader is desired.

    >>> from readerlink.adapter import Reader
    >>> select_reader(ConnectionPolicy.MANUAL, 'b', [Reader('a'), Reader('b')]).serial_number
    'b'
    >>> select_reader(ConnectionPolicy.MANUAL, 'c', [Reader('a'), Reader('b')]) is None
    True

    :return: the reader to connect to, or None when no reader in the batch is acceptable
    """
    for reader in readers:
        if reader.serial_number == desired:
            return reader
    if not readers:
        return None
    if policy is ConnectionPolicy.AUTO \
            or (policy is ConnectionPolicy.PERSIST and not desired) \
            or desired == DESIRED_READER_ANY:
        return readers[0]
    return None
