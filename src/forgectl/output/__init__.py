"""Output layer: rich console, theme, and color mode handling."""
