"""Catalog service application package."""
