"""Concrete adapters for the interfaces in :mod:`dreamembed.interfaces`."""
