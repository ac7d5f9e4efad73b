"""
Command-line interface for Usage Window.
"""
