"""Core primitives shared across dopplervars."""
