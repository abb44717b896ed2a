"""Challenge responders."""
