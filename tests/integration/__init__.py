"""
Integration Tests Package for the Parking Lot

Integration tests focus on:
1. Service, command and event bus working together
2. End-to-end console sessions with scripted input
3. Error handling across layer boundaries
"""
