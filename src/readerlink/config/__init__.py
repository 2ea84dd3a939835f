"""
Configuration of a connection manager, built on top of ConfigObj. Configuration files are layered -
default / os-specific / user / local, with a schema to validate the types of the config data.
"""
