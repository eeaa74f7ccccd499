"""Core — the phase orchestration engine and its supporting layers."""
