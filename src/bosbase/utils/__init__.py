"""Internal utilities for the BosBase SDK."""

from bosbase.utils.http import HttpClient

__all__ = ["HttpClient"]
