"""Sample application package scanned by the discovery and app tests."""
