"""
Unit Tests Package for the Parkline parking lot

Domain components (slot pool, registry, waitlist, billing, engine) and
infrastructure (configuration, event bus) tested in isolation.
"""
