"""Services — workspace, versions, trust, artifacts, builders and host configuration."""
