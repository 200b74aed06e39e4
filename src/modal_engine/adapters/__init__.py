"""Adapters that embed the engine in concrete UI toolkits."""
