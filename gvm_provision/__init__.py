"""Greenbone/OpenVAS multi-host provisioning."""

__version__ = "0.4.0"
