"""Core infrastructure: configuration, database handle, logging and probes."""
