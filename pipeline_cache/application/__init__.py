"""
Application Layer

Pipeline behaviors that put the distributed cache in front of handlers.
"""
