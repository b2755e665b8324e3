"""Conversational product discovery for storefront chat widgets."""

__version__ = "0.3.0"
