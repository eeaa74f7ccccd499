"""Engine — registry, selection, execution and validation of phases."""
