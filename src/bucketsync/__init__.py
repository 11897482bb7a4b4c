"""bucketsync - One-way synchronization of local files to an object-storage bucket."""

__version__ = "0.1.0"
