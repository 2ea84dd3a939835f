"""
Key-value persistence for the connection manager. The manager keeps a single value, the
serial number of the persisted reader, under a fixed key.
"""
import logging
import os
from abc import ABCMeta, abstractmethod

from configobj import ConfigObj, ConfigObjError

logger = logging.getLogger(__name__)


class PersistentStore(metaclass=ABCMeta):
    """ Asynchronous string storage that survives process restarts. """

    @abstractmethod
    async def get_item(self, key):
        """ :return: the value stored under key, or None """
        raise NotImplementedError

    @abstractmethod
    async def set_item(self, key, value):
        raise NotImplementedError

    @abstractmethod
    async def remove_item(self, key):
        """ Removes the value stored under key, if any. """
        raise NotImplementedError


class MemoryStore(PersistentStore):
    """ Keeps values in a dictionary. Values do not outlive the process. """

    def __init__(self, values=None):
        self.values = dict(values or {})

    async def get_item(self, key):
        return self.values.get(key)

    async def set_item(self, key, value):
        self.values[key] = value

    async def remove_item(self, key):
        self.values.pop(key, None)


class ConfigFileStore(PersistentStore):
    """
    Stores values as top-level entries of a configobj file. The file is read on each access
    so that values written by a previous process are seen, and rewritten on each change.
    :param path: the file to store values in. It is created on the first write.
    """

    def __init__(self, path):
        self.path = path

    def _load(self) -> ConfigObj:
        try:
            config = ConfigObj(self.path, file_error=False)
        except ConfigObjError as e:
            raise type(e)(str(e) + ' at ' + self.path)
        config.filename = self.path
        return config

    async def get_item(self, key):
        if not os.path.exists(self.path):
            return None
        return self._load().get(key)

    async def set_item(self, key, value):
        config = self._load()
        config[key] = value
        config.write()
        logger.debug("stored %s in %s" % (key, self.path))

    async def remove_item(self, key):
        if not os.path.exists(self.path):
            return
        config = self._load()
        if key in config:
            del config[key]
            config.write()
            logger.debug("removed %s from %s" % (key, self.path))
