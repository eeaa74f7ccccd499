"""Configuration loading and toggle resolution."""
