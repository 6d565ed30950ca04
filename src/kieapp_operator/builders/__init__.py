"""Builders turning the desired state into managed resources."""

from .resources import console_link, console_link_name, flatten, requested_routes

__all__ = ["flatten", "requested_routes", "console_link", "console_link_name"]
