"""Orchestration layer -- the ControlPlane facade."""

from integrity_services.control_plane import ControlPlane

__all__ = ["ControlPlane"]
