import os
import platform

from configobj import ConfigObj, ConfigObjError, Section
from validate import Validator

from readerlink.store import ConfigFileStore, MemoryStore

# The default extension for configuration files
config_extension = '.cfg'

# the directory holding the schema files shipped with the package
schema_directory = os.path.dirname(__file__)

# the configuration name used when none is given
default_config_name = 'readerlink'


def config_flavor(name, flavor=None):
    configname = name if not flavor else name + '.' + flavor
    return configname


def config_filename(name, directory=None):
    """
    Determines the location of a config file in the given directory.
    """
    config_file = os.path.join(directory, name + config_extension)
    return config_file


def load_config_file_base(file, must_exist=True):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :return: The ConfigObj instance for the file.
    """
    try:
        return ConfigObj(file, interpolation='Template', file_error=must_exist) \
            if must_exist or os.path.exists(file) else ConfigObj()
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def config_flavor_file(name, directory, subpart=None) -> ConfigObj:
    """
    Loads a specialization of a config file. The configuration file is expected to be named
    after the base, followed by a period and then the specialization, if the specialization is given,
    otherwise just the base name. A missing file gives an empty configuration.
    """
    configname = config_flavor(name, subpart)
    file = config_filename(configname, directory)
    return load_config_file_base(file, False)


def map_os_name(name):
    """
    >>> map_os_name('Windows')
    'windows'
    >>> map_os_name("Darwin")
    'osx'
    """
    name = name.lower()
    if name == 'darwin':
        name = 'osx'
    return name


def os_name():
    return map_os_name(platform.system())


def load_schema(name=default_config_name):
    """ Loads the schema that configurations are validated against. """
    file = config_filename(config_flavor(name, 'schema'), schema_directory)
    return ConfigObj(file, file_error=True, _inspec=True)


def load_config(name=default_config_name, directory='.', user_directory='~'):
    """
        Loads all the configuration files that relate to the given name.
        Configurations are merged in this order, later ones overriding earlier ones:
        - the default specialization
        - the platform specialization
        - the user override, in the user's home directory
        - the base configuration
        The merged configuration is validated against the schema shipped with the package.
    :param directory: the location of the configuration files
    :raises ConfigObjError: when a file cannot be parsed or the configuration fails validation
    :return: the validated ConfigObj
    """
    default_config = config_flavor_file(name, directory, 'default')
    platform_config = config_flavor_file(name, directory, os_name())
    user_config = load_config_file_base(os.path.join(os.path.expanduser(user_directory), name + config_extension),
                                        must_exist=False)
    local_config = config_flavor_file(name, directory)
    config = ConfigObj()
    config.merge(default_config)
    config.merge(platform_config)
    config.merge(user_config)
    config.merge(local_config)

    config.configspec = load_schema()
    validator = Validator()
    result = config.validate(validator)
    if result is not True:
        raise ConfigObjError("the config file %s failed validation %s" % (name, result))
    return config


def fetch_conf_path(conf: Section, path):
    """
    Retrieves the named configuration section
    :param conf:        The root configuration
    :param path:        An iterable that lists the names of the sections to resolve
    :return: The configuration section identified by the path, or None
    """
    for p in path:    # lookup specific section
        conf = conf.get(p, None)
        if conf is None:
            return
    return conf


def connection_options(config: Section):
    """
    Retrieves the keyword arguments for a ConnectionManager from the [connection] section.
    Unset values are left out so the manager applies its own defaults.
    """
    conf = fetch_conf_path(config, ['connection']) or {}
    return {k: v for k, v in conf.items() if v is not None}


def create_store(config: Section):
    """
    Creates the store for the persisted reader. When [store] names a path the values are kept
    in that file, otherwise in memory.
    """
    path = fetch_conf_path(config, ['store', 'path'])
    return ConfigFileStore(os.path.expanduser(path)) if path else MemoryStore()
