"""
Core connection lifecycle: domain models, interfaces and the state machine.
"""
