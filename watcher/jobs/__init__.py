"""
watcher/jobs/ - CLI entrypoints.

- run_watch: stream blocks of the configured chains as JSON lines
"""
