"""
Configuration for the ctf-tools manager.
"""
