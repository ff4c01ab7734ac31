"""
Configuration — Pulp connection settings and the declared-mirrors file.
"""
