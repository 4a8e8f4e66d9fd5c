"""HTTP surface and phase driver for the session engine."""
