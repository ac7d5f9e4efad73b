"""
Usage Window.

Computes the raw usage window needed to bill in-arrear usage.
"""
