"""Storefront order checkout service."""
