"""
sshcred - personal SSH credential manager.
"""

__version__ = "0.3.0"
