"""Dispatch, assembly and remote service clients."""
