"""Core modules: logging, exceptions and the filesystem abstraction."""
