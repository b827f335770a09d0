"""
hytale_launcher package
-----------------------
Installs, verifies and supervises a local Hytale dedicated server.
Contains modules for configuration, install-state fingerprints, remote
version checks, launcher script patching, downloads, and server process
supervision (plus a small REST API).
"""

__version__ = "0.1.0"
