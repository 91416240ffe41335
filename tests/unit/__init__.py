"""
Unit Tests Package

Domain structures, billing, the allocation engine, DTOs and the event bus,
each exercised in isolation.
"""
