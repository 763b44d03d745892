"""Packaging and local installation of extensions."""

from extpack.__version__ import __version__
