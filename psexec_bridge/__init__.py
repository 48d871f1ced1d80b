"""
PsExec Bridge - file operations on a remote Windows host, driven through PsExec.
"""
__version__ = "2.0.0"
