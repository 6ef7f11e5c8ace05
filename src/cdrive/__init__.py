"""cdrive - Google Drive command-line client.

This package provides the `cdrive` CLI: an OAuth2 login that captures the
authorization code on a loopback redirect (or from a pasted URL), and
commands to list, create, upload and download Drive files.
"""
__version__ = "0.3.0"
__all__ = ["__version__"]
