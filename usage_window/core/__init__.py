"""
Core modules for Usage Window.

This package contains billing period arithmetic, the clock abstraction
and the raw usage window optimizer.
"""
