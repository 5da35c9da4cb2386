"""Gateway infrastructure: route scanning, IPC, worker processes and an example worker."""

__version__ = "0.1.0"