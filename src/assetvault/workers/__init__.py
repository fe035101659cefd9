"""Job handlers run by the external job runner."""
