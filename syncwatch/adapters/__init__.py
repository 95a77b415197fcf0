"""
Adapters binding the watcher core to the outside world.
"""
