"""Engines — baseline store, reconciler, cycle runner and their collaborators."""
