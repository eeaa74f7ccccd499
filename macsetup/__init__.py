"""macsetup — phase-ordered macOS workstation provisioning."""

__version__ = "0.1.0"
