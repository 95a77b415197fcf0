"""
Event sources feeding the accumulators: local inotify and Syncthing's event stream.
"""
