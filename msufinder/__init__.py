"""Find download links for Microsoft security bulletin patches."""

__version__ = "0.1.0"
