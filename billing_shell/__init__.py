"""billing-shell: a filesystem-style command shell for the Chargify billing API."""

__version__ = "0.1.0"
