"""Clients for the systems openebs_ops talks to."""
