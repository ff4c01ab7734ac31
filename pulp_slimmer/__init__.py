"""
Pulp Slimmer — Reconcile Pulp RPM mirrors and build slim, purpose-scoped repos.
"""

__version__ = "0.1.0"
