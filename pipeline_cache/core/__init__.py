"""
Core Module

Foundational components: configuration, logging, exceptions, interfaces and
the Result type handlers return.
"""
