"""Configuration layer: paths, layered config files, settings, logging."""
