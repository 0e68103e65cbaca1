"""Non-maximum suppression and descriptor matching."""
