"""Client side of bucketsync - local cache, reporter and command line."""
