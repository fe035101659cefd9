"""HTTP adapter for the pending staging flow."""
