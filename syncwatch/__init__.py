"""
syncwatch - push filesystem changes to Syncthing.

Watches every Syncthing folder with inotify, drops ignored paths and
changes Syncthing made itself, folds bursts of changes into a few
directory scans and asks Syncthing to rescan exactly those.
"""

__version__ = "0.4.0"
