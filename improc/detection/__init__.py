"""Corner detectors and descriptors."""
