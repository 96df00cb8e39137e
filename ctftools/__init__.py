"""
ctf-tools manager: installs, uninstalls, upgrades and links security tools.
"""

__version__ = "0.1.0"
