"""Rooster attendance backend.

Feature modules (users, attendance, media) each carry a model, a repository
interface with its MySQL implementation, a service and a thin Flask
controller. ``container.build_container`` wires them from ``Settings``.
"""
